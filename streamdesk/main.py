import os

from fastapi import FastAPI

from streamdesk import __version__
from streamdesk.config import settings
from streamdesk.dependencies import get_orchestrator, get_supervisor
from streamdesk.logging_config import get_logger, setup_logging
from streamdesk.routers import admin, webhook

setup_logging(settings.log_level)

logger = get_logger("main")

app = FastAPI(
    title="StreamDesk API",
    description="WhatsApp self-service bot for streaming account customers",
    version=__version__,
)

app.include_router(webhook.router)
app.include_router(admin.router)


def _is_background_enabled() -> bool:
    return not os.environ.get("PYTEST_CURRENT_TEST")


@app.on_event("startup")
async def start_background() -> None:
    if not _is_background_enabled():
        return
    orchestrator = get_orchestrator()
    orchestrator.sessions.start_sweeper(settings.session_sweep_interval_ms, hooks=(orchestrator.sweep,))
    await get_supervisor().start()
    logger.info("Background tasks started")


@app.on_event("shutdown")
async def stop_background() -> None:
    if not _is_background_enabled():
        return
    await get_orchestrator().sessions.stop_sweeper()
    await get_supervisor().stop()
    logger.info("Background tasks stopped")


@app.get("/health")
async def health():
    return {"status": "ok"}
