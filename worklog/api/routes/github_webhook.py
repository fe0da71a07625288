"""
GitHub webhook endpoint: record pushed commits as they happen.

POST /api/github-webhook
Header: X-Hub-Signature-256: sha256=<HMAC of the body with GITHUB_WEBHOOK_SECRET>
Header: X-GitHub-Event: push
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import json
import os

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from worklog.config import WEBHOOK_SECRET_ENV
from worklog.observability.logging import get_logger
from worklog.observability.telemetry import counter
from worklog.services.github_webhook import PushEventRecorder

router = APIRouter(prefix="/api", tags=["webhooks"])
logger = get_logger(__name__)


class WebhookResponse(BaseModel):
    ok: bool = True
    skipped: bool = False
    inserted: int = 0
    reason: str | None = None


def get_push_recorder() -> PushEventRecorder:
    return PushEventRecorder()


def sign(secret: str, body: bytes) -> str:
    return "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


async def verified_body(request: Request) -> bytes:
    """
    FastAPI dependency: the raw body, once its signature checks out.

    Raises:
        HTTPException: 500 if the secret is not configured, 401 if the
            signature is missing or wrong
    """
    secret = os.getenv(WEBHOOK_SECRET_ENV)
    if not secret:
        logger.error("%s is not configured; refusing webhook", WEBHOOK_SECRET_ENV)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"{WEBHOOK_SECRET_ENV} not configured",
        )

    signature = request.headers.get("X-Hub-Signature-256")
    if not signature:
        counter("api.webhook.unsigned")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing signature")

    body = await request.body()
    if not hmac.compare_digest(signature.encode(), sign(secret, body).encode()):
        counter("api.webhook.bad_signature")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    return body


@router.post("/github-webhook", response_model=WebhookResponse)
async def github_webhook(
    body: bytes = Depends(verified_body),
    x_github_event: str | None = Header(default=None),
    recorder: PushEventRecorder = Depends(get_push_recorder),
) -> WebhookResponse:
    try:
        payload = json.loads(body)
    except json.JSONDecodeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body") from e
    if not isinstance(payload, dict):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid JSON body")

    outcome = await asyncio.to_thread(recorder.record, x_github_event, payload)
    return WebhookResponse(skipped=outcome.skipped, inserted=outcome.inserted, reason=outcome.reason)
