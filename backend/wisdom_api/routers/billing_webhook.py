from fastapi import APIRouter, Depends, Request
import logging

from sqlmodel import Session
from starlette.concurrency import run_in_threadpool

from ..core.database import get_session
from ..limits import limiter
from ..services import webhooks

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Billing Webhook"])


def _process(payload: bytes, sig_header: str | None, session: Session) -> dict:
    event = webhooks.construct_event(payload, sig_header)
    applied = webhooks.apply_event(session, event)
    logger.info("[webhook] %s %s applied=%s", event["type"], event["id"], applied)
    return event


@router.post("/stripe")
@limiter.exempt
async def stripe_webhook(request: Request, session: Session = Depends(get_session)):
    # Signature is computed over the exact bytes Stripe sent
    payload = await request.body()
    sig_header = request.headers.get("stripe-signature")
    await run_in_threadpool(_process, payload, sig_header, session)
    return {"received": True}
