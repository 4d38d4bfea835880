"""
Record store for events, contact messages and donations.

Two backends implement the same RecordStore protocol and are chosen at
startup:

- MemoryStore keeps everything in process (dev/tests, lost on restart)
- SqlStore persists through SQLAlchemy (SQLite locally, Postgres in production)

Both hand out pydantic entities, never live rows, so a caller cannot change
stored state except through the store's own operations.
"""
import itertools
import logging
import threading
from typing import Dict, List, Optional, Protocol

from sqlalchemy import select, update

from . import donation_models, donation_schemas, errors, models, schemas
from .clock import utcnow
from .database import create_tables, make_engine, make_session_factory

log = logging.getLogger(__name__)


class RecordStore(Protocol):
    def get_events(self) -> List[schemas.Event]: ...

    def get_event(self, event_id: int) -> Optional[schemas.Event]: ...

    def create_event(self, fields: schemas.EventCreate) -> schemas.Event: ...

    def create_contact_message(self, fields: schemas.ContactCreate) -> schemas.ContactMessage: ...

    def get_contact_messages(self) -> List[schemas.ContactMessage]: ...

    def create_donation(
        self,
        fields: donation_schemas.DonationCreate,
        payment_intent_id: str,
        status: str = donation_schemas.PENDING,
    ) -> donation_schemas.Donation: ...

    def update_donation_status(self, donation_id: int, status: str) -> donation_schemas.Donation: ...

    def transition_donation_status(
        self, donation_id: int, from_status: str, to_status: str
    ) -> Optional[donation_schemas.Donation]: ...

    def get_donation(self, donation_id: int) -> Optional[donation_schemas.Donation]: ...

    def get_donation_by_payment_intent(self, payment_intent_id: str) -> Optional[donation_schemas.Donation]: ...


def _donation_not_found(donation_id: int) -> errors.NotFound:
    return errors.NotFound(f'Donation {donation_id} not found')


def _check_status(status: str) -> None:
    if status not in donation_schemas.STATUSES:
        raise errors.ValidationError(f'Unknown donation status {status!r}')


class MemoryStore:
    """Ephemeral store. One id counter per entity kind, ids are never reused."""

    def __init__(self):
        self._lock = threading.Lock()
        self._events: Dict[int, schemas.Event] = {}
        self._messages: Dict[int, schemas.ContactMessage] = {}
        self._donations: Dict[int, donation_schemas.Donation] = {}
        self._event_ids = itertools.count(1)
        self._message_ids = itertools.count(1)
        self._donation_ids = itertools.count(1)

    # ===== EVENTS =====

    def get_events(self) -> List[schemas.Event]:
        with self._lock:
            return [e.model_copy() for _, e in sorted(self._events.items())]

    def get_event(self, event_id: int) -> Optional[schemas.Event]:
        with self._lock:
            event = self._events.get(event_id)
            return event.model_copy() if event else None

    def create_event(self, fields: schemas.EventCreate) -> schemas.Event:
        with self._lock:
            event = schemas.Event(id=next(self._event_ids), **fields.model_dump())
            self._events[event.id] = event
            return event.model_copy()

    # ===== CONTACT =====

    def create_contact_message(self, fields: schemas.ContactCreate) -> schemas.ContactMessage:
        with self._lock:
            msg = schemas.ContactMessage(id=next(self._message_ids), created_at=utcnow(), **fields.model_dump())
            self._messages[msg.id] = msg
            return msg.model_copy()

    def get_contact_messages(self) -> List[schemas.ContactMessage]:
        with self._lock:
            return [m.model_copy() for _, m in sorted(self._messages.items())]

    # ===== DONATIONS =====

    def create_donation(self, fields, payment_intent_id, status=donation_schemas.PENDING):
        _check_status(status)
        with self._lock:
            donation = donation_schemas.Donation(
                id=next(self._donation_ids),
                payment_intent_id=payment_intent_id,
                status=status,
                created_at=utcnow(),
                **fields.model_dump(),
            )
            self._donations[donation.id] = donation
            return donation.model_copy()

    def update_donation_status(self, donation_id, status):
        _check_status(status)
        with self._lock:
            current = self._donations.get(donation_id)
            if current is None:
                raise _donation_not_found(donation_id)
            updated = current.model_copy(update={'status': status})
            self._donations[donation_id] = updated
            return updated.model_copy()

    def transition_donation_status(self, donation_id, from_status, to_status):
        """Set to_status only if the row is still in from_status, else None."""
        _check_status(to_status)
        with self._lock:
            current = self._donations.get(donation_id)
            if current is None or current.status != from_status:
                return None
            updated = current.model_copy(update={'status': to_status})
            self._donations[donation_id] = updated
            return updated.model_copy()

    def get_donation(self, donation_id):
        with self._lock:
            donation = self._donations.get(donation_id)
            return donation.model_copy() if donation else None

    def get_donation_by_payment_intent(self, payment_intent_id):
        with self._lock:
            for _, donation in sorted(self._donations.items()):
                if donation.payment_intent_id == payment_intent_id:
                    return donation.model_copy()
            return None


class SqlStore:
    """Durable store; ids come from the database's autoincrement primary keys."""

    def __init__(self, session_factory):
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: str, create: bool = True) -> 'SqlStore':
        engine = make_engine(database_url)
        if create:
            create_tables(engine)
        return cls(make_session_factory(engine))

    # ===== EVENTS =====

    def get_events(self):
        with self._session_factory() as db:
            rows = db.scalars(select(models.Event).order_by(models.Event.id)).all()
            return [schemas.Event.model_validate(r) for r in rows]

    def get_event(self, event_id):
        with self._session_factory() as db:
            row = db.get(models.Event, event_id)
            return schemas.Event.model_validate(row) if row else None

    def create_event(self, fields):
        with self._session_factory() as db:
            row = models.Event(**fields.model_dump())
            db.add(row)
            db.commit()
            db.refresh(row)
            return schemas.Event.model_validate(row)

    # ===== CONTACT =====

    def create_contact_message(self, fields):
        with self._session_factory() as db:
            row = models.ContactMessage(created_at=utcnow(), **fields.model_dump())
            db.add(row)
            db.commit()
            db.refresh(row)
            return schemas.ContactMessage.model_validate(row)

    def get_contact_messages(self):
        with self._session_factory() as db:
            rows = db.scalars(select(models.ContactMessage).order_by(models.ContactMessage.id)).all()
            return [schemas.ContactMessage.model_validate(r) for r in rows]

    # ===== DONATIONS =====

    def create_donation(self, fields, payment_intent_id, status=donation_schemas.PENDING):
        _check_status(status)
        with self._session_factory() as db:
            row = donation_models.Donation(
                payment_intent_id=payment_intent_id,
                status=status,
                created_at=utcnow(),
                **fields.model_dump(),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return donation_schemas.Donation.model_validate(row)

    def update_donation_status(self, donation_id, status):
        _check_status(status)
        with self._session_factory() as db:
            row = db.get(donation_models.Donation, donation_id)
            if row is None:
                raise _donation_not_found(donation_id)
            row.status = status
            db.commit()
            db.refresh(row)
            return donation_schemas.Donation.model_validate(row)

    def transition_donation_status(self, donation_id, from_status, to_status):
        """Conditional single-row UPDATE; None when another writer got there first."""
        _check_status(to_status)
        with self._session_factory() as db:
            result = db.execute(
                update(donation_models.Donation)
                .where(donation_models.Donation.id == donation_id)
                .where(donation_models.Donation.status == from_status)
                .values(status=to_status)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                db.rollback()
                return None
            db.commit()
            row = db.get(donation_models.Donation, donation_id)
            return donation_schemas.Donation.model_validate(row)

    def get_donation(self, donation_id):
        with self._session_factory() as db:
            row = db.get(donation_models.Donation, donation_id)
            return donation_schemas.Donation.model_validate(row) if row else None

    def get_donation_by_payment_intent(self, payment_intent_id):
        with self._session_factory() as db:
            row = db.scalars(
                select(donation_models.Donation)
                .filter(donation_models.Donation.payment_intent_id == payment_intent_id)
                .order_by(donation_models.Donation.id)
                .limit(1)
            ).first()
            return donation_schemas.Donation.model_validate(row) if row else None


def build_store(settings) -> RecordStore:
    if settings.storage_backend == 'memory':
        log.warning('Using in-memory record store; data is lost on restart')
        return MemoryStore()
    log.info('Using SQL record store')
    return SqlStore.from_url(settings.database_url)
