"""Provider webhook ingestion endpoint.

The raw request body is handed to the pipeline before any parsing, because the
provider signs the exact bytes it sent.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, Response

from api.dependencies import get_pipeline
from bridge.pipeline import WebhookPipeline
from config.settings import get_settings

LOGGER = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["webhooks"])


@router.post("/{secret_path}")
async def provider_webhook(
    secret_path: str,
    request: Request,
    pipeline: WebhookPipeline = Depends(get_pipeline),
) -> Response:
    if secret_path != get_settings().webhook_secret_path:
        raise HTTPException(status_code=404, detail="Not Found")

    raw_body = await request.body()
    outcome = await pipeline.handle(raw_body, request.headers)
    LOGGER.debug("Webhook acknowledged outcome=%s", outcome.value)
    # Always OK so the provider does not redeliver.
    return Response(content="OK", media_type="text/plain")
