"""Process-wide collaborators, built on first use.

Routers depend on `get_orchestrator` / `get_analytics`, so tests can swap
them through `app.dependency_overrides`.
"""

from functools import lru_cache

from streamdesk.config import settings
from streamdesk.services.account_service import AccountRepository
from streamdesk.services.analytics_service import AnalyticsService
from streamdesk.services.automation.selenium_tv_login import SeleniumTvLogin
from streamdesk.services.orchestrator import ConversationOrchestrator
from streamdesk.services.transport import ChatFlowTransport, ConnectionSupervisor, MessagingTransport
from streamdesk.services.whitelist_service import WhitelistService


@lru_cache
def get_transport() -> MessagingTransport:
    return ChatFlowTransport(settings)


@lru_cache
def get_repository() -> AccountRepository:
    return AccountRepository()


@lru_cache
def get_analytics() -> AnalyticsService:
    return AnalyticsService()


@lru_cache
def get_supervisor() -> ConnectionSupervisor:
    return ConnectionSupervisor(get_transport(), settings.reconnect_delay_seconds)


@lru_cache
def get_orchestrator() -> ConversationOrchestrator:
    repository = get_repository()
    return ConversationOrchestrator(
        transport=get_transport(),
        repository=repository,
        automation=SeleniumTvLogin(repository, settings.screenshots_dir),
        whitelist=WhitelistService(repository.whitelist_numbers, settings.whitelist_cache_ttl_ms),
        analytics=get_analytics(),
        config=settings,
    )
