"""Inbound Linear webhook endpoint"""
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from syncbridge.config import settings
from syncbridge.models.base import get_db
from syncbridge.security import is_allowed_origin, request_ip
from syncbridge.services.engine import ReconciliationEngine, build_engine
from syncbridge.services.events import InboundEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/linear", tags=["webhooks"])


def get_engine(db: Session = Depends(get_db)) -> ReconciliationEngine:
    return build_engine(db, settings)


@router.post("/webhook")
async def linear_webhook(request: Request, engine: ReconciliationEngine = Depends(get_engine)):
    """Reconcile one Linear webhook delivery onto GitHub"""
    ip = request_ip(request)
    if not is_allowed_origin(ip, settings.linear_ip_origins):
        logger.warning(f"Rejected Linear webhook from unknown origin {ip}")
        raise HTTPException(status_code=403, detail="Could not verify Linear webhook.")

    try:
        payload = await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid JSON body.")
    try:
        event = InboundEvent.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid Linear webhook payload: {e}")

    # The engine does blocking I/O; keep it off the event loop.
    result = await run_in_threadpool(engine.handle, event)
    return JSONResponse(status_code=result.status_code, content=result.as_dict())
