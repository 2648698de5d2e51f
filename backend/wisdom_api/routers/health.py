from fastapi import APIRouter
from fastapi.responses import JSONResponse

from wisdom_api.core import database
from wisdom_api.models.user import ALL_INTERESTS

router = APIRouter(tags=["Health"])


@router.get("/health")
def health():
    """Liveness plus a trivial database round trip."""
    if database.check_database():
        return {"status": "ok", "db": "ok"}
    return JSONResponse(status_code=503, content={"status": "degraded", "db": "unreachable"})


@router.get("/interests")
def list_interests():
    return {"interests": ALL_INTERESTS}
