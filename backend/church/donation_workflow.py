"""
Donation lifecycle.

Card path:  create intent -> persist pending row -> (client confirms with Stripe)
            -> webhook moves the row to succeeded or failed
Bank path:  persist pending row with the bank-transfer sentinel; nothing
            confirms a manual transfer, so it stays pending.

A donation never leaves a terminal status. Redelivered webhooks are
acknowledged without touching the row.
"""
import logging
from typing import Any, Dict, Optional

from . import donation_schemas, errors
from .donation_schemas import FAILED, PENDING, SUCCEEDED

log = logging.getLogger(__name__)

EVENT_STATUSES = {
    'payment_intent.succeeded': SUCCEEDED,
    'payment_intent.payment_failed': FAILED,
}


class DonationWorkflow:
    def __init__(self, store, gateway):
        self.store = store
        self.gateway = gateway

    def initiate_card_donation(self, donation: donation_schemas.DonationCreate) -> donation_schemas.CardIntent:
        # the row is written only once the processor accepted the intent
        intent = self.gateway.create_payment_intent(donation.amount, donation.name, donation.email)
        try:
            row = self.store.create_donation(donation, payment_intent_id=intent.id, status=PENDING)
        except Exception:
            log.exception('Could not persist donation for intent %s', intent.id)
            self.gateway.cancel_payment_intent(intent.id)
            raise
        log.info('Donation %s pending on intent %s (%s)', row.id, intent.id, row.amount)
        return donation_schemas.CardIntent(client_secret=intent.client_secret, donation_id=row.id)

    def record_bank_transfer_donation(self, donation: donation_schemas.DonationCreate) -> donation_schemas.Donation:
        row = self.store.create_donation(
            donation,
            payment_intent_id=donation_schemas.BANK_TRANSFER_INTENT_ID,
            status=PENDING,
        )
        log.info('Bank transfer donation %s recorded (%s)', row.id, row.amount)
        return row

    def donation_status(self, donation_id: int) -> donation_schemas.Donation:
        donation = self.store.get_donation(donation_id)
        if donation is None:
            raise errors.NotFound('Donation not found')
        return donation

    def handle_payment_webhook(self, raw_payload: bytes, signature_header: Optional[str]) -> donation_schemas.WebhookAck:
        verification = self.gateway.verify_webhook(raw_payload, signature_header)
        if not verification.verified:
            log.warning('Rejected webhook: %s', verification.reason)
            raise errors.InvalidSignature('Invalid signature')

        event = verification.event
        event_type = event.get('type')
        status = EVENT_STATUSES.get(event_type)
        if status is None:
            log.info('Ignoring webhook event %s (%s)', event.get('id'), event_type)
            return donation_schemas.WebhookAck()

        data = event.get('data') if isinstance(event.get('data'), dict) else {}
        intent = data.get('object')
        if not isinstance(intent, dict):
            log.warning('Webhook event %s carries no payment intent', event.get('id'))
            return donation_schemas.WebhookAck()

        donation = self._find_donation(intent)
        if donation is None:
            log.warning('Webhook %s for unknown payment intent %s', event_type, intent.get('id'))
            return donation_schemas.WebhookAck()

        self.transition(donation, status)
        return donation_schemas.WebhookAck()

    def transition(self, donation: donation_schemas.Donation, status: str) -> donation_schemas.Donation:
        """Apply pending -> succeeded|failed; anything else is a logged no-op."""
        if donation.status == status:
            log.info('Donation %s already %s', donation.id, status)
            return donation
        if donation.status != PENDING:
            log.warning('Donation %s is %s, ignoring transition to %s', donation.id, donation.status, status)
            return donation
        # the row may have left pending since it was read
        updated = self.store.transition_donation_status(donation.id, PENDING, status)
        if updated is None:
            current = self.store.get_donation(donation.id) or donation
            log.warning('Donation %s became %s concurrently, ignoring transition to %s',
                        donation.id, current.status, status)
            return current
        log.info('Donation %s: %s -> %s', donation.id, PENDING, status)
        return updated

    def _find_donation(self, intent: Dict[str, Any]) -> Optional[donation_schemas.Donation]:
        intent_id = intent.get('id')
        if intent_id == donation_schemas.BANK_TRANSFER_INTENT_ID:
            # manual transfers have no processor-side confirmation
            return None
        metadata = intent.get('metadata') if isinstance(intent.get('metadata'), dict) else {}
        donation_id = str(metadata.get('donation_id') or '').strip()
        if donation_id.isdigit():
            donation = self.store.get_donation(int(donation_id))
            # metadata must agree with the intent the row was created for
            if donation is not None and donation.payment_intent_id == intent_id:
                return donation
        if not intent_id:
            return None
        return self.store.get_donation_by_payment_intent(str(intent_id))
