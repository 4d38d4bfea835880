"""
Stripe integration.

All calls to the payment processor go through StripeGateway. Webhook payloads
are only decoded after their signature has been verified against the shared
signing secret.
"""
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import stripe

from . import errors

log = logging.getLogger(__name__)

# seconds a signed webhook stays acceptable
WEBHOOK_TOLERANCE = 300


@dataclass(frozen=True)
class PaymentIntent:
    id: str
    client_secret: str


@dataclass(frozen=True)
class WebhookVerification:
    status: str  # 'verified' or 'invalid'
    event: Optional[Dict[str, Any]] = None
    reason: str = ''

    @property
    def verified(self) -> bool:
        return self.status == 'verified'

    @classmethod
    def ok(cls, event: Dict[str, Any]) -> 'WebhookVerification':
        return cls('verified', event=event)

    @classmethod
    def invalid(cls, reason: str) -> 'WebhookVerification':
        return cls('invalid', reason=reason)


def init_stripe(settings) -> None:
    """Process-wide client setup: bounded timeout, no automatic retries."""
    stripe.default_http_client = stripe.RequestsClient(timeout=settings.stripe_timeout)
    stripe.max_network_retries = 0
    log.info('Stripe initialized (%s mode)', settings.stripe_mode)


class StripeGateway:
    def __init__(self, secret_key: str, webhook_secret: str, currency: str = 'usd'):
        self.secret_key = secret_key
        self.webhook_secret = webhook_secret
        self.currency = currency

    @classmethod
    def from_settings(cls, settings) -> 'StripeGateway':
        return cls(settings.stripe_secret_key, settings.stripe_webhook_secret, settings.stripe_currency)

    def create_payment_intent(self, amount: int, name: str, email: str) -> PaymentIntent:
        """Create an intent for `amount` whole units; Stripe wants minor units."""
        try:
            intent = stripe.PaymentIntent.create(
                api_key=self.secret_key,
                amount=amount * 100,
                currency=self.currency,
                payment_method_types=['card'],
                receipt_email=email,
                metadata={
                    'source': 'donation',
                    'donor_name': name,
                    'donor_email': email,
                },
            )
        except stripe.StripeError as e:
            log.error('Stripe PaymentIntent.create failed: %s', e)
            raise errors.UpstreamError('Payment processor error') from e
        if not intent.id or not intent.client_secret:
            log.error('Stripe returned an intent without id or client secret')
            raise errors.UpstreamError('Payment processor error')
        return PaymentIntent(id=intent.id, client_secret=intent.client_secret)

    def cancel_payment_intent(self, payment_intent_id: str) -> None:
        """Best effort; an unconfirmed intent also expires on its own."""
        try:
            stripe.PaymentIntent.cancel(payment_intent_id, api_key=self.secret_key)
            log.info('Cancelled orphaned payment intent %s', payment_intent_id)
        except stripe.StripeError as e:
            log.warning('Could not cancel payment intent %s: %s', payment_intent_id, e)

    def verify_webhook(self, payload: bytes, signature_header: Optional[str]) -> WebhookVerification:
        if not signature_header:
            return WebhookVerification.invalid('missing signature header')
        try:
            body = payload.decode('utf-8') if isinstance(payload, bytes) else payload
        except UnicodeDecodeError:
            return WebhookVerification.invalid('payload is not utf-8')
        try:
            stripe.WebhookSignature.verify_header(body, signature_header, self.webhook_secret, WEBHOOK_TOLERANCE)
        except stripe.SignatureVerificationError as e:
            return WebhookVerification.invalid(str(e))
        try:
            event = json.loads(body)
        except ValueError:
            return WebhookVerification.invalid('payload is not json')
        if not isinstance(event, dict):
            return WebhookVerification.invalid('payload is not an event object')
        return WebhookVerification.ok(event)
