"""
Webhook endpoint for GitHub deliveries.
"""

import hashlib
import hmac
import json
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Header, HTTPException, Request

from triagebot.config import Settings
from triagebot.errors import InvalidPayloadError
from triagebot.models.api_response import WebhookResponse
from triagebot.models.events import SUBSCRIBED_EVENTS, parse_webhook_event
from triagebot.services.dispatcher import EventDispatcher
from triagebot.utils.logging import get_logger, log_webhook_event

logger = get_logger(__name__)

router = APIRouter(tags=["webhooks"])


def verify_webhook_signature(payload: bytes, signature: Optional[str], secret: str) -> bool:
    """
    Verify a GitHub webhook signature.
    
    Args:
        payload: Raw request payload
        signature: ``X-Hub-Signature-256`` header value (``sha256=<hex>``)
        secret: Webhook signing secret
        
    Returns:
        True if signature is valid, False otherwise
    """
    if not signature or not secret:
        return False
    
    expected_signature = "sha256=" + hmac.new(
        secret.encode(),
        payload,
        hashlib.sha256
    ).hexdigest()
    
    # Constant-time comparison
    return hmac.compare_digest(signature, expected_signature)


def get_dispatcher(request: Request) -> EventDispatcher:
    return request.app.state.dispatcher


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@router.post("/", response_model=WebhookResponse)
async def handle_github_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    x_hub_signature: Optional[str] = Header(None, alias="X-Hub-Signature-256"),
    x_github_event: Optional[str] = Header(None, alias="X-GitHub-Event"),
    x_github_delivery: Optional[str] = Header(None, alias="X-GitHub-Delivery"),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_app_settings),
) -> WebhookResponse:
    """
    Receive a GitHub webhook delivery.
    
    This endpoint:
    1. Validates the webhook signature
    2. Ignores events the bot does not subscribe to
    3. Parses the payload into a typed event
    4. Returns 200 immediately and dispatches the event in the background
    
    Raises:
        HTTPException: 401 on a bad signature, 400 on an invalid payload
    """
    payload = await request.body()
    
    if not verify_webhook_signature(payload, x_hub_signature, settings.github_webhook_secret):
        logger.warning("Invalid webhook signature received", extra={"delivery_id": x_github_delivery})
        raise HTTPException(status_code=401, detail="Invalid webhook signature")
    
    try:
        payload_json = json.loads(payload)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid event payload")
    if not isinstance(payload_json, dict):
        raise HTTPException(status_code=400, detail="Invalid event payload")
    
    event_name = f"{x_github_event}.{payload_json.get('action')}"
    if event_name not in SUBSCRIBED_EVENTS:
        logger.info(f"Ignoring event type: {event_name}", extra={"delivery_id": x_github_delivery})
        return WebhookResponse(
            status="ignored",
            message=f"Event type {event_name} not processed"
        )
    
    try:
        event = parse_webhook_event(event_name, payload_json)
    except InvalidPayloadError as e:
        logger.error(f"{e}", extra={"delivery_id": x_github_delivery})
        raise HTTPException(status_code=400, detail="Invalid event payload")
    
    log_webhook_event(logger, event_name, event.repository.full_name, x_github_delivery)
    
    background_tasks.add_task(dispatcher.dispatch, event, x_github_delivery)
    
    return WebhookResponse(
        status="accepted",
        message=f"{event_name} for {event.repository.full_name} accepted for processing"
    )
