import re
import uuid

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

HEADER = "X-Request-ID"
# Accept caller-supplied ids only when they look like an id, not arbitrary text
_VALID_ID = re.compile(r"^[A-Za-z0-9._-]{8,128}$")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tag every request with an id, echoed back in the X-Request-ID header."""

    async def dispatch(self, request: Request, call_next):
        incoming = request.headers.get(HEADER)
        rid = incoming if incoming and _VALID_ID.match(incoming) else uuid.uuid4().hex
        request.state.request_id = rid
        response = await call_next(request)
        response.headers[HEADER] = rid
        return response
