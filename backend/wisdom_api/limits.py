import os
from typing import Callable

from slowapi import Limiter

from wisdom_api.core.ip_utils import rate_limit_key


DISABLE = os.getenv("DISABLE_RATE_LIMITS") == "1"
DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "600/hour")
STORAGE = os.getenv("RATE_LIMIT_REDIS_URL")

# Fixed ceilings for the unauthenticated auth endpoints
SIGNUP_LIMIT = "5/minute"
LOGIN_LIMIT = "10/minute"
FORGOT_PASSWORD_LIMIT = "5/hour"
RESET_PASSWORD_LIMIT = "10/hour"
VERIFY_EMAIL_LIMIT = "20/hour"


class NoopLimiter:
    def limit(self, _spec: str) -> Callable:
        def _decorator(fn):
            return fn
        return _decorator

    def exempt(self, fn: Callable) -> Callable:
        return fn


def _build_limiter():
    if DISABLE:
        return NoopLimiter()
    kwargs = {}
    if STORAGE:
        # slowapi/limits uses storage_uri for backends like redis://...
        kwargs["storage_uri"] = STORAGE
    return Limiter(key_func=rate_limit_key, default_limits=[DEFAULT], **kwargs)


limiter = _build_limiter()

__all__ = [
    "limiter",
    "NoopLimiter",
    "DISABLE",
    "DEFAULT",
    "STORAGE",
    "SIGNUP_LIMIT",
    "LOGIN_LIMIT",
    "FORGOT_PASSWORD_LIMIT",
    "RESET_PASSWORD_LIMIT",
    "VERIFY_EMAIL_LIMIT",
]
