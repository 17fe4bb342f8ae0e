from pathlib import Path

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from fastapi.responses import FileResponse

from streamdesk.dependencies import get_orchestrator
from streamdesk.logging_config import get_logger
from streamdesk.schemas.webhook import WebhookMessage, WebhookResponse
from streamdesk.services.media_urls import media_root, normalize_media_path, verify_signed_media_path
from streamdesk.services.orchestrator import ConversationOrchestrator

logger = get_logger("webhook")

router = APIRouter()


@router.post("/webhook", response_model=WebhookResponse)
async def handle_webhook(
    payload: WebhookMessage,
    background_tasks: BackgroundTasks,
    orchestrator: ConversationOrchestrator = Depends(get_orchestrator),
):
    """Acknowledge at once; the conversation step runs after the response is sent."""
    if payload.from_me:
        return WebhookResponse(success=True, message="Ignored own message")
    if not (payload.message or "").strip():
        return WebhookResponse(success=True, message="Ignored empty message")

    logger.info(
        "Webhook received",
        extra={"context": {"jid": payload.remote_jid, "message_id": payload.message_id}},
    )
    background_tasks.add_task(orchestrator.handle_message, payload.remote_jid, payload.message, payload.from_me)
    return WebhookResponse(success=True, message="Queued")


@router.get("/media/{media_path:path}")
async def serve_media(media_path: str, expires: int, sig: str):
    """Serve files from the media dir to ChatFlow via signed URLs."""
    normalized = normalize_media_path(media_path)
    if not normalized:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing media path")
    if not verify_signed_media_path(normalized, expires, sig):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid or expired signature")

    base_dir = media_root()
    target = (base_dir / normalized).resolve()
    if base_dir not in target.parents:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid media path")
    if not Path(target).is_file():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Media not found")
    return FileResponse(target)
