"""
Church website API.

Run with:  uvicorn church.main:create_app --factory
"""
import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Body, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import errors, schemas
from .config import Settings, configure_logging
from .dependencies import get_store, require_admin_key
from .donation_routes import router as donation_router
from .donation_workflow import DonationWorkflow
from .payments import StripeGateway, init_stripe
from .schemas import validate_payload
from .storage import build_store

log = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, store=None, gateway=None) -> FastAPI:
    """Build the app. Missing Stripe secrets raise ConfigError before anything starts."""
    if settings is None:
        settings = Settings.from_env()
    configure_logging(settings.log_level)

    if gateway is None:
        init_stripe(settings)
        gateway = StripeGateway.from_settings(settings)
    if not settings.card_enabled:
        log.warning('STRIPE_PUBLISHABLE_KEY missing: card payments are disabled for clients')
    if store is None:
        store = build_store(settings)

    app = FastAPI(title="Church Website API")
    app.state.settings = settings
    app.state.store = store
    app.state.workflow = DonationWorkflow(store, gateway)

    # Browser rule: cannot use credentials with wildcard origin
    origins = list(settings.cors_origins)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _register_error_handlers(app)
    app.include_router(router)
    app.include_router(donation_router)
    return app


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(errors.ChurchError)
    async def church_error_handler(request: Request, exc: errors.ChurchError):
        if exc.status_code >= 500:
            log.error('%s %s failed: %s', request.method, request.url.path, exc.message)
        else:
            log.warning('%s %s -> %s: %s', request.method, request.url.path, exc.status_code, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        log.warning('%s %s -> 400: malformed request', request.method, request.url.path)
        return JSONResponse(status_code=400, content={"message": "Invalid request"})


# ===== EVENTS & CONTACT =====

router = APIRouter(prefix="/api", tags=["Events & Contact"])


@router.get('/events', response_model=List[schemas.Event])
def list_events(store=Depends(get_store)):
    return store.get_events()


@router.get('/events/{event_id}', response_model=schemas.Event)
def get_event(event_id: str, store=Depends(get_store)):
    # a non-numeric id names no event
    event = store.get_event(int(event_id)) if event_id.isascii() and event_id.isdigit() else None
    if not event:
        raise errors.NotFound('Event not found')
    return event


@router.post('/events', response_model=schemas.Event, status_code=201)
def create_event(payload: Any = Body(None), store=Depends(get_store)):
    fields = validate_payload(schemas.EventCreate, payload, 'Invalid event data')
    return store.create_event(fields)


@router.post('/contact', response_model=schemas.ContactMessage, status_code=201)
def create_contact_message(payload: Any = Body(None), store=Depends(get_store)):
    fields = validate_payload(schemas.ContactCreate, payload, 'Invalid contact data')
    return store.create_contact_message(fields)


@router.get('/contact', response_model=List[schemas.ContactMessage], dependencies=[Depends(require_admin_key)])
def list_contact_messages(store=Depends(get_store)):
    return store.get_contact_messages()
