import datetime
from typing import List, Literal, Optional

from pydantic import EmailStr, Field

from .schemas import ApiModel, Entity

PENDING = 'pending'
SUCCEEDED = 'succeeded'
FAILED = 'failed'
TERMINAL_STATUSES = (SUCCEEDED, FAILED)
STATUSES = (PENDING,) + TERMINAL_STATUSES
DonationStatus = Literal['pending', 'succeeded', 'failed']

# paymentIntentId of donations that never went through the payment processor
BANK_TRANSFER_INTENT_ID = 'manual-bank-transfer'

# processor ceiling for a single charge, in whole units
MAX_AMOUNT = 999_999


class DonationCreate(ApiModel):
    name: str = Field(min_length=1, max_length=200)
    email: EmailStr
    amount: int = Field(gt=0, le=MAX_AMOUNT, strict=True)  # whole currency units
    message: Optional[str] = None


class Donation(Entity):
    id: int
    amount: int
    name: str
    email: str
    message: Optional[str] = None
    payment_intent_id: str
    status: DonationStatus
    created_at: datetime.datetime


class CardIntent(ApiModel):
    client_secret: str
    donation_id: int


class DonationStatusView(ApiModel):
    id: int
    status: DonationStatus


class BankDetailsView(ApiModel):
    bank_name: str
    account_holder: str
    iban: Optional[str] = None
    bic: Optional[str] = None
    reference: str


class BankTransferReceipt(ApiModel):
    donation: Donation
    bank_details: BankDetailsView


class DonationConfig(ApiModel):
    card_enabled: bool
    publishable_key: Optional[str] = None
    currency: str
    preset_amounts: List[int]
    bank_details: BankDetailsView


class WebhookAck(ApiModel):
    received: bool = True
