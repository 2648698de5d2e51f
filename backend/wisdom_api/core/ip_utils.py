"""Client address lookup for rate limiting."""

from __future__ import annotations

import logging
from typing import Optional

from starlette.requests import Request

log = logging.getLogger(__name__)


def get_client_ip(request: Request) -> Optional[str]:
    """
    Return the address of the peer that opened the connection.

    X-Forwarded-For is never read here: uvicorn's proxy_headers rewrites
    request.client from it, but only for hops listed in FORWARDED_ALLOW_IPS.
    """
    if request.client and request.client.host:
        return request.client.host

    log.warning("[IP] Unable to determine client IP address from request")
    return None


def rate_limit_key(request: Request) -> str:
    """slowapi key function: one bucket per client address."""
    return get_client_ip(request) or "anon"
