"""Application error taxonomy.

Every error the service raises on purpose derives from :class:`AppError` and
carries the HTTP status and machine-readable ``code`` it maps to. The handlers
in :mod:`wisdom_api.exceptions` render them as
``{"error": message, "code": code, "request_id": ...}``.
"""
from __future__ import annotations

import logging
import traceback
import uuid
from typing import Any, Mapping, Optional

_log = logging.getLogger("wisdom_api.exceptions")


class AppError(Exception):
    status_code: int = 500
    code: str = "internal_error"
    message: str = "Something went wrong"

    def __init__(self, message: Optional[str] = None, *, headers: Optional[dict[str, str]] = None) -> None:
        self.message = message or self.message
        self.headers = dict(headers or {})
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    code = "validation_error"
    message = "Please check your input and try again."


class MissingProductReference(ValidationError):
    code = "missing_product_reference"
    message = "Exactly one of article_id, book_id or course_id is required"


class AuthError(AppError):
    status_code = 401
    code = "auth_error"
    message = "Authentication failed"

    def __init__(self, message: Optional[str] = None, *, headers: Optional[dict[str, str]] = None) -> None:
        merged = {"WWW-Authenticate": "Bearer"}
        merged.update(headers or {})
        super().__init__(message, headers=merged)


class InvalidCredentials(AuthError):
    code = "invalid_credentials"
    message = "Invalid email or password"


class EmailNotVerified(AuthError):
    status_code = 403
    code = "email_not_verified"
    message = "Please verify your email before logging in"


class InvalidToken(AuthError):
    code = "invalid_token"
    message = "Invalid or expired session token"


class MissingToken(AuthError):
    code = "missing_token"
    message = "Authentication required"


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"
    message = "You do not have permission to perform this action"


class InvalidOrExpiredToken(AppError):
    status_code = 400
    code = "invalid_or_expired_token"
    message = "This link is invalid or has expired"


class ConflictError(AppError):
    status_code = 409
    code = "conflict"
    message = "Conflict"


class DuplicateEmail(ConflictError):
    code = "duplicate_email"
    message = "A user with this email already exists"


class AlreadyRegistered(ConflictError):
    code = "already_registered"
    message = "Already registered as an affiliate"


class NotFoundError(AppError):
    status_code = 404
    code = "not_found"
    message = "Not found"


class PaymentError(AppError):
    status_code = 400
    code = "payment_error"
    message = "Payment could not be processed"


class PaymentNotSucceeded(PaymentError):
    code = "payment_not_succeeded"
    message = "Payment not successful"


class WebhookVerificationError(AppError):
    status_code = 400
    code = "webhook_verification_failed"
    message = "Webhook signature verification failed"


class WebhookNotConfigured(AppError):
    status_code = 503
    code = "webhook_not_configured"
    message = "Stripe webhook secret not configured"


class InternalError(AppError):
    status_code = 500
    code = "internal_error"
    message = "Something went wrong"


def audit_conflict(exc: ConflictError, context: Optional[Mapping[str, Any]] = None) -> ConflictError:
    """Log a conflict loudly with a debug id and attach it as ``X-Debug-ID``.

    Returns the same exception so callers can ``raise audit_conflict(...)``.
    """
    debug_id = uuid.uuid4().hex
    try:
        stack = "\n".join(traceback.format_stack()[:-1])
    except Exception:
        stack = "(failed to capture stack)"
    try:
        ctx_str = "" if context is None else repr(dict(context))
    except Exception:
        ctx_str = "(failed to stringify context)"

    _log.error(
        "event=conflict_audit debug_id=%s code=%s detail=%s context=%s",
        debug_id,
        exc.code,
        exc.message,
        ctx_str,
    )
    _log.debug("event=conflict_stack debug_id=%s stack=\n%s", debug_id, stack)
    exc.headers["X-Debug-ID"] = debug_id
    return exc
