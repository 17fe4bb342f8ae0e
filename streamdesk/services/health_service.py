from datetime import datetime, timezone

from streamdesk.logging_config import get_logger

logger = get_logger("health_service")


async def get_system_health(orchestrator, analytics) -> dict:
    """Transport status, database ping and guard sizes in one snapshot."""
    database_ok = False
    try:
        database_ok = await analytics.ping()
    except Exception as e:
        logger.error(f"Database ping failed: {e}")

    return {
        "checked_at": datetime.now(timezone.utc).isoformat(),
        "transport": orchestrator.transport.status.value,
        "database": "ok" if database_ok else "error",
        "guards": orchestrator.stats(),
    }
