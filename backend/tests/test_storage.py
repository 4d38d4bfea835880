import datetime
import threading

import pytest

from church import errors
from church.donation_schemas import BANK_TRANSFER_INTENT_ID, DonationCreate, FAILED, SUCCEEDED
from church.schemas import ContactCreate, EventCreate
from church.storage import MemoryStore


def make_event(title='Sunday Service'):
    return EventCreate(
        title=title,
        description='Weekly worship',
        date=datetime.datetime(2025, 6, 1, 10, 0),
        location='Main Hall',
    )


def make_donation(amount=25):
    return DonationCreate(name='Ada', email='ada@x.com', amount=amount, message='')


def test_events_get_fresh_ids_and_keep_order(store):
    first = store.create_event(make_event('First'))
    second = store.create_event(make_event('Second'))

    assert second.id > first.id
    assert [e.title for e in store.get_events()] == ['First', 'Second']
    assert store.get_event(first.id) == first
    assert first.is_recurring is False


def test_get_missing_event_is_absent(store):
    assert store.get_event(999) is None


def test_contact_message_gets_timestamp(store):
    msg = store.create_contact_message(ContactCreate(name='Bo', email='bo@x.com', message='Hello'))

    assert msg.id >= 1
    assert isinstance(msg.created_at, datetime.datetime)
    assert store.get_contact_messages() == [msg]


def test_create_donation_defaults_to_pending(store):
    donation = store.create_donation(make_donation(), payment_intent_id='pi_1')

    assert donation.status == 'pending'
    assert donation.amount == 25
    assert donation.payment_intent_id == 'pi_1'
    assert store.get_donation(donation.id) == donation
    assert store.get_donation_by_payment_intent('pi_1') == donation


def test_lookup_by_unknown_payment_intent(store):
    store.create_donation(make_donation(), payment_intent_id=BANK_TRANSFER_INTENT_ID)
    assert store.get_donation_by_payment_intent('pi_nope') is None


def test_update_status_overwrites_status_only(store):
    donation = store.create_donation(make_donation(), payment_intent_id='pi_1')

    updated = store.update_donation_status(donation.id, SUCCEEDED)

    assert updated.status == SUCCEEDED
    assert updated.model_dump(exclude={'status'}) == donation.model_dump(exclude={'status'})


def test_update_status_twice_is_idempotent(store):
    donation = store.create_donation(make_donation(), payment_intent_id='pi_1')

    once = store.update_donation_status(donation.id, FAILED)
    twice = store.update_donation_status(donation.id, FAILED)

    assert once == twice
    assert store.get_donation(donation.id) == twice


def test_update_unknown_donation_raises_not_found(store):
    with pytest.raises(errors.NotFound):
        store.update_donation_status(42, SUCCEEDED)


def test_returned_entities_are_copies(store):
    donation = store.create_donation(make_donation(), payment_intent_id='pi_1')
    donation.status = 'succeeded'

    assert store.get_donation(donation.id).status == 'pending'


def test_memory_store_ids_never_collide_under_concurrency():
    store = MemoryStore()
    ids = []
    lock = threading.Lock()

    def worker():
        for _ in range(50):
            d = store.create_donation(make_donation(), payment_intent_id='pi_x')
            with lock:
                ids.append(d.id)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(ids) == 400
    assert len(set(ids)) == 400


def test_memory_store_instances_are_independent():
    a, b = MemoryStore(), MemoryStore()
    a.create_event(make_event())

    assert b.get_events() == []


def test_transition_only_moves_from_expected_status(store):
    donation = store.create_donation(make_donation(), payment_intent_id='pi_1')

    moved = store.transition_donation_status(donation.id, 'pending', SUCCEEDED)
    again = store.transition_donation_status(donation.id, 'pending', FAILED)

    assert moved.status == SUCCEEDED
    assert again is None
    assert store.get_donation(donation.id).status == SUCCEEDED


def test_transition_unknown_donation_returns_none(store):
    assert store.transition_donation_status(42, 'pending', SUCCEEDED) is None


@pytest.mark.parametrize('operation', ['update', 'transition', 'create'])
def test_unknown_status_is_rejected_before_writing(store, operation):
    donation = store.create_donation(make_donation(), payment_intent_id='pi_1')

    with pytest.raises(errors.ValidationError):
        if operation == 'update':
            store.update_donation_status(donation.id, 'bogus')
        elif operation == 'transition':
            store.transition_donation_status(donation.id, 'pending', 'bogus')
        else:
            store.create_donation(make_donation(), payment_intent_id='pi_2', status='bogus')

    assert store.get_donation(donation.id).status == 'pending'
    assert store.get_donation_by_payment_intent('pi_2') is None
