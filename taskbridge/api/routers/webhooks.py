"""Inbound LINE webhook endpoint."""

import json
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from integrations.line.webhook import validate_line_signature
from taskbridge.api.dependencies import get_db, get_job_queue, get_settings
from taskbridge.db.repositories.messaging_repo import IntegrationRepository
from taskbridge.messaging.ports import JobQueue
from taskbridge.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/webhooks", tags=["webhooks"])


@router.post("/line/{integration_id}")
async def line_webhook(
    integration_id: UUID,
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
    queue: JobQueue = Depends(get_job_queue),
) -> dict[str, Any]:
    """Receive a signed batch of LINE events for one integration.

    Verifies ``X-Line-Signature`` against the integration's channel secret,
    records the receipt time, and enqueues one background job per event.
    Processing happens asynchronously, so a valid request is always
    acknowledged with 200.

    Raises:
        HTTPException: 404 if integrations are disabled or the integration is
            unknown, 401 on a missing or invalid signature, 400 on malformed JSON
            or a body that is not an object with an ``events`` list.
    """
    if not settings.feature_flags.enable_integrations:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Platform integrations are not enabled",
        )

    body = await request.body()
    signature = request.headers.get("X-Line-Signature", "")
    if not signature:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Line-Signature header",
        )

    integration = await IntegrationRepository(db).get_by_id(integration_id)
    if integration is None:
        logger.warning(f"line_webhook_integration_not_found: integration_id={integration_id}")
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown integration")

    if not validate_line_signature(integration.channel_secret, body, signature):
        logger.warning(f"line_webhook_invalid_signature: integration_id={integration_id}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid LINE signature",
        )

    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload",
        )

    events = (payload.get("events") or []) if isinstance(payload, dict) else None
    if not isinstance(events, list):
        logger.warning(f"line_webhook_malformed_body: integration_id={integration_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Payload must be an object with an events list",
        )

    integration.last_webhook_received_at = datetime.now(timezone.utc)
    await db.commit()

    enqueued = 0
    for event in events:
        try:
            queue.enqueue_webhook_event(event, integration_id)
            enqueued += 1
        except Exception as exc:
            # Acknowledge anyway; a 5xx would make LINE resend the whole batch
            logger.warning(
                f"line_webhook_dispatch_failed: integration_id={integration_id}, error={str(exc)}"
            )

    logger.info(
        f"line_webhook_received: integration_id={integration_id}, "
        f"events={len(events)}, enqueued={enqueued}"
    )
    return {"status": "ok", "events": enqueued}
