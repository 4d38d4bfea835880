import hashlib
import hmac
import json
import time
from types import SimpleNamespace

import pytest
import stripe
from fastapi.testclient import TestClient

from church.config import Settings
from church.main import create_app
from church.payments import StripeGateway
from church.storage import MemoryStore, SqlStore

WEBHOOK_SECRET = 'whsec_test_secret'


class FakeStripe:
    """Stands in for the PaymentIntent API calls"""

    def __init__(self):
        self.created = []
        self.cancelled = []
        self.fail_with = None

    def create(self, **params):
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append(params)
        intent_id = f'pi_test_{len(self.created)}'
        return SimpleNamespace(id=intent_id, client_secret=f'{intent_id}_secret_xyz')

    def cancel(self, intent_id, **params):
        self.cancelled.append(intent_id)


@pytest.fixture
def settings():
    return Settings(
        stripe_secret_key='sk_test_123',
        stripe_webhook_secret=WEBHOOK_SECRET,
        stripe_publishable_key='pk_test_123',
        storage_backend='memory',
    )


@pytest.fixture(params=['memory', 'sql'])
def store(request):
    if request.param == 'memory':
        return MemoryStore()
    return SqlStore.from_url('sqlite://')


@pytest.fixture
def fake_stripe(monkeypatch):
    fake = FakeStripe()
    monkeypatch.setattr(stripe.PaymentIntent, 'create', fake.create)
    monkeypatch.setattr(stripe.PaymentIntent, 'cancel', fake.cancel)
    return fake


@pytest.fixture
def gateway(settings, fake_stripe):
    return StripeGateway.from_settings(settings)


@pytest.fixture
def client(settings, store, gateway):
    return TestClient(create_app(settings, store=store, gateway=gateway))


@pytest.fixture
def sign():
    """Build a webhook body and a Stripe-Signature header for it."""
    def _sign(event, secret=WEBHOOK_SECRET, timestamp=None):
        payload = event if isinstance(event, str) else json.dumps(event)
        ts = int(time.time()) if timestamp is None else timestamp
        digest = hmac.new(secret.encode('utf-8'), f'{ts}.{payload}'.encode('utf-8'), hashlib.sha256).hexdigest()
        return payload, f't={ts},v1={digest}'
    return _sign


@pytest.fixture
def intent_event():
    def _event(event_type, intent_id, metadata=None, event_id='evt_test_1'):
        return {
            'id': event_id,
            'object': 'event',
            'type': event_type,
            'data': {'object': {'id': intent_id, 'object': 'payment_intent', 'metadata': metadata or {}}},
        }
    return _event
