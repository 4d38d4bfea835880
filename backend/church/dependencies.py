from fastapi import Header, Request

from . import errors


def get_settings(request: Request):
    return request.app.state.settings


def get_store(request: Request):
    return request.app.state.store


def get_workflow(request: Request):
    return request.app.state.workflow


def require_admin_key(request: Request, x_api_key: str = Header(None)):
    # Simple API key protection for admin reads; open when no key is configured.
    admin_key = request.app.state.settings.admin_api_key
    if admin_key and x_api_key != admin_key:
        raise errors.Unauthorized('Unauthorized')
