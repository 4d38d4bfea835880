"""
Donation endpoints: card intents, bank transfers, status and the Stripe webhook
"""
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Header, Request
from starlette.concurrency import run_in_threadpool

from . import donation_schemas
from .dependencies import get_settings, get_workflow
from .schemas import validate_payload

router = APIRouter(prefix="/api", tags=["Donations"])

INVALID_DONATION = "Invalid donation data"


def _bank_details(settings) -> donation_schemas.BankDetailsView:
    bank = settings.bank
    return donation_schemas.BankDetailsView(
        bank_name=bank.bank_name,
        account_holder=bank.account_holder,
        iban=bank.iban,
        bic=bank.bic,
        reference=bank.reference,
    )


@router.get("/donations/config", response_model=donation_schemas.DonationConfig)
def donation_config(settings=Depends(get_settings)):
    """Client-side donation settings; card payments are off without a publishable key"""
    return donation_schemas.DonationConfig(
        card_enabled=settings.card_enabled,
        publishable_key=settings.stripe_publishable_key or None,
        currency=settings.stripe_currency,
        preset_amounts=list(settings.preset_amounts),
        bank_details=_bank_details(settings),
    )


@router.post("/donations/create-intent", response_model=donation_schemas.CardIntent)
def create_intent(payload: Any = Body(None), workflow=Depends(get_workflow)):
    donation = validate_payload(donation_schemas.DonationCreate, payload, INVALID_DONATION)
    return workflow.initiate_card_donation(donation)


@router.post("/donations", response_model=donation_schemas.BankTransferReceipt, status_code=201)
def create_bank_transfer_donation(payload: Any = Body(None), workflow=Depends(get_workflow), settings=Depends(get_settings)):
    """Record a bank-transfer pledge and return the transfer instructions"""
    donation = validate_payload(donation_schemas.DonationCreate, payload, INVALID_DONATION)
    row = workflow.record_bank_transfer_donation(donation)
    return donation_schemas.BankTransferReceipt(donation=row, bank_details=_bank_details(settings))


@router.get("/donations/{donation_id}/status", response_model=donation_schemas.DonationStatusView)
def donation_status(donation_id: int, workflow=Depends(get_workflow)):
    donation = workflow.donation_status(donation_id)
    return donation_schemas.DonationStatusView(id=donation.id, status=donation.status)


@router.post("/webhooks/stripe", response_model=donation_schemas.WebhookAck)
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    workflow=Depends(get_workflow),
):
    # signature is computed over the exact bytes Stripe sent
    payload = await request.body()
    return await run_in_threadpool(workflow.handle_payment_webhook, payload, stripe_signature)
