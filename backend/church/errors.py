"""
Error taxonomy shared by the store, the donation workflow and the API.

Every error carries a short, client-safe message and the HTTP status it is
surfaced as. Internal detail goes to the server log only.
"""


class ChurchError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(ChurchError):
    """Malformed client input"""
    status_code = 400


class NotFound(ChurchError):
    status_code = 404


class UpstreamError(ChurchError):
    """The payment processor was unreachable or rejected the call"""
    status_code = 500


class InvalidSignature(ChurchError):
    """Webhook authenticity check failed; the processor will redeliver"""
    status_code = 400


class Unauthorized(ChurchError):
    status_code = 401


class ConfigError(Exception):
    """Fatal startup condition"""
