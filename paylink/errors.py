from fastapi import Request
from fastapi.responses import JSONResponse


class PaymentLinkError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class BadRequest(PaymentLinkError):
    """Malformed link, client secret or amounts. Never retried."""

    status_code = 400


class NotFound(PaymentLinkError):
    """Seller, product or intent could not be resolved."""

    status_code = 404


class UpstreamFailure(PaymentLinkError):
    """A payment gateway call failed."""

    status_code = 502

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


async def payment_link_error_handler(request: Request, exc: PaymentLinkError):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})
