"""Per-message conversation flow.

One `handle_message` pass runs the ingress guards in a fixed order, resolves
the flow step and dispatches it. Every step that calls the data store or the
browser runs under a named step lock; collaborator failures are caught here,
apologised for, and the conversation goes back to Idle.
"""

import re
from typing import Awaitable, Callable, Optional

from streamdesk.config import Settings, settings as default_settings
from streamdesk.logging_config import get_logger
from streamdesk.services import alert_service
from streamdesk.services import templates as t
from streamdesk.services.account_service import AccountRepository
from streamdesk.services.admin_commands import AdminCommands
from streamdesk.services.analytics_service import AnalyticsService
from streamdesk.services.automation.base import TvLoginAutomation
from streamdesk.services.guards import (
    Cooldown,
    DuplicateSuppressor,
    MenuCooldownGate,
    RateLimiter,
    SessionStore,
    StepKey,
    StepLockManager,
)
from streamdesk.services.guards.clock import Clock, monotonic_ms
from streamdesk.services.media_service import send_image_with_retry, send_video_with_retry
from streamdesk.services.pacing import DELAY, FlowPacer
from streamdesk.services.phone import jid_to_number, normalize_local, parse_number_list
from streamdesk.services.state_machine import (
    MENU_SERVICES,
    TV_SERVICE,
    FlowState,
    FlowStep,
    InvalidTransitionError,
    Service,
    can_transition,
    menu_option,
    parse_choice,
    resolve_step,
    transition,
)
from streamdesk.services.transport.base import MessagingTransport, TransportError
from streamdesk.services.whitelist_service import WhitelistService

logger = get_logger("orchestrator")


class ConversationOrchestrator:
    def __init__(
        self,
        transport: MessagingTransport,
        repository: AccountRepository,
        automation: TvLoginAutomation,
        whitelist: WhitelistService,
        analytics: AnalyticsService,
        config: Settings = default_settings,
        clock: Clock = monotonic_ms,
        pacer: Optional[FlowPacer] = None,
    ):
        self.transport = transport
        self.repository = repository
        self.automation = automation
        self.whitelist = whitelist
        self.config = config

        self.rate_limiter = RateLimiter(config.rate_limit_window_ms, config.rate_limit_max, clock)
        self.duplicates = DuplicateSuppressor(config.duplicate_window_ms, clock)
        self.locks = StepLockManager(clock)
        self.sessions = SessionStore(config.session_ttl_ms, clock)
        self.query_cooldown = Cooldown(config.query_cooldown_ms, clock)
        self.menu_gate = MenuCooldownGate(self._send_menu, self.send_text, config.menu_cooldown_ms, clock)
        self.pacer = pacer or FlowPacer(transport, config.flow_delay_scale)

        self.admins = set(parse_number_list(config.admin_numbers))
        self.welcomed: set[str] = set()
        self.maintenance = False
        self.admin_commands = AdminCommands(self, analytics)

        self._steps: dict[FlowStep, Callable[[str, str], Awaitable[None]]] = {
            FlowStep.WELCOME: self._welcome,
            FlowStep.TV_EMAIL_PICK: self._tv_email_pick,
            FlowStep.EMAIL_PICK: self._email_pick,
            FlowStep.ACCOUNT_DATA: self._account_data,
            FlowStep.SERVICE_LOOKUP: self._service_lookup,
            FlowStep.TV_LOOKUP: self._tv_lookup,
            FlowStep.MANUAL_EMAIL: self._manual_email,
            FlowStep.TV_CODE: self._tv_code,
            FlowStep.MENU_REQUEST: self._menu_request,
            FlowStep.FALLBACK: self._fallback,
        }

    # === ENTRY POINT ===

    async def handle_message(self, jid: str, raw_text: Optional[str], from_me: bool = False) -> None:
        """Process one inbound message. Never raises."""
        try:
            await self._handle(jid, raw_text, from_me)
        except Exception as e:
            logger.error(f"Error processing message: {e}", exc_info=True, extra={"context": {"jid": jid}})

    async def _handle(self, jid: str, raw_text: Optional[str], from_me: bool) -> None:
        if from_me:
            return
        text = (raw_text or "").strip().lower()
        if not text:
            return

        if self.duplicates.should_drop(jid, text):
            logger.info("Duplicate dropped", extra={"context": {"jid": jid, "text": text}})
            return
        self.duplicates.record(jid, text)

        number = jid_to_number(jid)
        logger.info("Inbound message", extra={"context": {"jid": jid, "number": number, "text": text}})

        if not self.rate_limiter.allow(jid):
            await self.send_text(jid, t.MSG_RATE_LIMITED)
            return
        if self.query_cooldown.active(jid):
            await self.send_text(jid, t.MSG_QUERY_COOLDOWN.format(seconds=self.query_cooldown.remaining_seconds(jid)))
            return

        if text.startswith("#") and await self.admin_commands.dispatch(jid, number, text):
            return

        admin = self.is_admin(number)
        if not admin and not await self.whitelist.is_allowed(number):
            await self.send_text(jid, t.MSG_ACCESS_DENIED)
            return
        if self.maintenance and not admin:
            await self.send_text(jid, t.MSG_MAINTENANCE)
            return

        if self.sessions.expired(jid):
            self.sessions.clear(jid)
            logger.info("Session expired", extra={"context": {"jid": jid}})
            await self.send_text(jid, t.MSG_SESSION_EXPIRED)
            await self.menu_gate.try_send(jid)
            return

        # A running welcome owns the conversation until it finishes.
        if self.locks.is_locked(jid, StepKey.WELCOME):
            await self.busy(jid)
            return

        session = self.sessions.get(jid)
        step = resolve_step(welcomed=jid in self.welcomed, state=session.state, text=text)
        logger.debug(f"Resolved step {step.value}", extra={"context": {"jid": jid, "state": session.state.value}})

        # Steps never overlap: the running one would clear whatever state this one sets up.
        if step is not FlowStep.MENU_REQUEST and self.locks.any_locked(jid):
            await self.busy(jid)
            return
        await self._steps[step](jid, text)

    # === HELPERS ===

    def is_admin(self, number: str) -> bool:
        return normalize_local(number) in self.admins

    async def send_text(self, jid: str, text: str) -> None:
        await self.transport.send_text(jid, text)

    async def _send_menu(self, jid: str) -> None:
        await self.transport.send_text(jid, t.MENU_TEXT)

    async def busy(self, jid: str, text: str = t.MSG_BUSY) -> None:
        logger.info("Step busy", extra={"context": {"jid": jid}})
        await self.send_text(jid, text)

    def _enter(self, jid: str, state: FlowState, **fields) -> None:
        current = self.sessions.get(jid).state
        if current != state:
            transition(current, state)
        self.sessions.update(jid, state=state, **fields)

    async def return_to_idle(self, jid: str) -> None:
        """Close the flow: clear session state, send the menu image and cool the menu down."""
        current = self.sessions.get(jid).state
        if current != FlowState.IDLE and not can_transition(current, FlowState.IDLE):
            logger.warning(f"Forcing {current.value} back to idle", extra={"context": {"jid": jid}})
        self.sessions.clear(jid)

        await self.pacer.pause(3000)
        sent = await send_image_with_retry(
            self.transport, jid, self.config.menu_image_path, t.MENU_IMAGE_CAPTION, attempts=3, delay_seconds=0.9
        )
        if sent:
            self.menu_gate.arm(jid)
            return
        try:
            await self.menu_gate.force_send(jid)
        except TransportError as e:
            logger.error(f"Could not send text menu: {e}", extra={"context": {"jid": jid}})
            self.menu_gate.arm(jid)

    async def _recover(self, jid: str, error: Exception) -> None:
        logger.error(f"Collaborator failure: {error}", exc_info=error, extra={"context": {"jid": jid}})
        try:
            await self.send_text(jid, t.MSG_LOOKUP_ERROR)
        except TransportError as e:
            logger.error(f"Could not send apology: {e}", extra={"context": {"jid": jid}})
        await self.return_to_idle(jid)

    async def _locked_step(self, jid: str, key: StepKey, ttl_ms: int, work: Callable[[], Awaitable[None]]) -> None:
        async def guarded() -> None:
            try:
                await work()
            except InvalidTransitionError:
                raise
            except Exception as e:
                await self._recover(jid, e)

        if not await self.locks.with_lock(jid, key, ttl_ms, guarded):
            await self.busy(jid)

    async def _reply_codes(self, jid: str, service: Service, email: str, ack: str, ack_ms: int, min_ms: int) -> None:
        await self.pacer.send_ack_and_hold(jid, ack, ack_ms)
        rows = await self.pacer.with_typing(
            jid, lambda: self.repository.codes_for_email(service.value, email), min_ms
        )
        if rows:
            await self.send_text(jid, t.render_code_result(service.value, rows))
        else:
            await self.send_text(jid, t.MSG_NO_CODES.format(email=email, service=service.value))
        self.query_cooldown.arm(jid)
        await self.return_to_idle(jid)

    async def _tv_password(self, number: str) -> Optional[str]:
        rows = await self.repository.account_data(number)
        for row in rows:
            if (row.platform or "").strip().lower() == TV_SERVICE.value.lower():
                return row.password
        return None

    def reset_conversation(self, jid: str) -> None:
        self.sessions.clear(jid)
        self.welcomed.discard(jid)
        self.locks.reset(jid)
        self.duplicates.forget(jid)

    def sweep(self) -> int:
        """Memory hygiene for the guards without their own background sweep."""
        return (
            self.locks.sweep()
            + self.rate_limiter.sweep()
            + self.duplicates.sweep()
            + self.query_cooldown.sweep()
            + self.menu_gate.cooldown.sweep()
        )

    def stats(self) -> dict:
        return {
            "sessions": len(self.sessions),
            "welcomed": len(self.welcomed),
            "active_locks": self.locks.active_count(),
            "rate_buckets": len(self.rate_limiter),
            "duplicate_records": len(self.duplicates),
            "query_cooldowns": len(self.query_cooldown),
            "menu_cooldowns": len(self.menu_gate.cooldown),
            "maintenance": self.maintenance,
        }

    # === STEPS ===

    async def _welcome(self, jid: str, text: str) -> None:
        async def work() -> None:
            self.welcomed.add(jid)
            name = None
            try:
                name = await self.repository.customer_name(jid_to_number(jid))
            except Exception as e:
                logger.warning(f"Customer name lookup failed: {e}", extra={"context": {"jid": jid}})
            greeting = t.MSG_WELCOME_NAMED.format(name=name) if name else t.MSG_WELCOME
            await self.pacer.send_typing_text(jid, greeting, DELAY["greeting"])
            await self.pacer.send_typing_text(jid, t.MSG_TUTORIAL_INTRO, DELAY["pre_video_text"])
            await send_video_with_retry(
                self.transport, jid, self.config.tutorial_video_path, t.MSG_TUTORIAL_CAPTION, attempts=3, delay_seconds=1.5
            )
            await self.pacer.pause(DELAY["after_video_menu"])
            await self.menu_gate.try_send(jid)

        await self._locked_step(jid, StepKey.WELCOME, self.config.welcome_lock_ttl_ms, work)

    async def _tv_email_pick(self, jid: str, text: str) -> None:
        session = self.sessions.get(jid)
        email = parse_choice(text, session.email_options)
        if email is None:
            await self.send_text(jid, t.MSG_INVALID_PICK.format(count=len(session.email_options)))
            return
        self._enter(jid, FlowState.AWAITING_TV_CODE, email_options=[email])
        await self.send_text(jid, t.MSG_TV_EMAIL_CHOSEN.format(email=email, length=self.config.tv_code_length))

    async def _email_pick(self, jid: str, text: str) -> None:
        async def work() -> None:
            session = self.sessions.get(jid)
            email = parse_choice(text, session.email_options)
            if email is None:
                await self.send_text(jid, t.MSG_INVALID_PICK.format(count=len(session.email_options)))
                return
            service = session.service or MENU_SERVICES["1"]
            await self._reply_codes(
                jid,
                service,
                email,
                t.MSG_CONFIRM_LOOKUP.format(service=service.value, email=email),
                DELAY["confirm_ack"],
                DELAY["confirm_min"],
            )

        await self._locked_step(jid, StepKey.CODE_LOOKUP, self.config.code_lookup_lock_ttl_ms, work)

    async def _account_data(self, jid: str, text: str) -> None:
        async def work() -> None:
            await self.pacer.send_ack_and_hold(jid, t.MSG_QUERYING_DATA, DELAY["query_ack"])
            rows = await self.pacer.with_typing(
                jid, lambda: self.repository.account_data(jid_to_number(jid)), DELAY["query_min"]
            )
            await self.send_text(jid, t.render_updated_at())
            if rows:
                await self.send_text(jid, t.render_account_data(rows))
            else:
                await self.send_text(jid, t.MSG_NO_ACCOUNT_DATA)
            self.query_cooldown.arm(jid)
            await self.return_to_idle(jid)

        await self._locked_step(jid, StepKey.MISDATOS, self.config.misdatos_lock_ttl_ms, work)

    async def _service_lookup(self, jid: str, text: str) -> None:
        service = MENU_SERVICES[menu_option(text)]

        async def work() -> None:
            await self.pacer.send_ack_and_hold(
                jid, t.MSG_LOOKING_UP_EMAILS.format(service=service.value), DELAY["email_lookup_ack"]
            )
            emails = await self.pacer.with_typing(
                jid,
                lambda: self.repository.emails_for_service(jid_to_number(jid), service.value),
                DELAY["email_lookup_min"],
            )

            if not emails:
                self._enter(jid, FlowState.MANUAL_EMAIL_ENTRY, service=service, email_options=[])
                await self.send_text(jid, t.MSG_NO_EMAILS_MANUAL.format(service=service.value))
                return

            if len(emails) == 1:
                email = emails[0]
                await self.pacer.send_ack_and_hold(jid, t.MSG_SINGLE_EMAIL.format(email=email), DELAY["single_email_ack"])
                await self._reply_codes(
                    jid,
                    service,
                    email,
                    t.MSG_SEARCHING_CODE.format(service=service.value),
                    DELAY["search_code_ack"],
                    DELAY["search_code_min"],
                )
                return

            await self.pacer.send_typing_text(
                jid, t.MSG_EMAILS_FOUND.format(count=len(emails), service=service.value), DELAY["multi_email_announce"]
            )
            self._enter(jid, FlowState.AWAITING_EMAIL_PICK, service=service, email_options=emails)
            await self.send_text(jid, t.render_email_menu(service.value, emails))

        await self._locked_step(jid, StepKey.SERVICE_LOOKUP, self.config.service_lookup_lock_ttl_ms, work)

    async def _tv_lookup(self, jid: str, text: str) -> None:
        service = TV_SERVICE

        async def work() -> None:
            number = jid_to_number(jid)
            await self.pacer.send_ack_and_hold(
                jid, t.MSG_LOOKING_UP_EMAILS.format(service=service.value), DELAY["email_lookup_ack"]
            )
            emails = await self.pacer.with_typing(
                jid, lambda: self.repository.emails_for_service(number, service.value), DELAY["email_lookup_min"]
            )
            if not emails:
                await self.send_text(jid, t.MSG_NO_EMAILS.format(service=service.value))
                await self.return_to_idle(jid)
                return
            if not await self._tv_password(number):
                await self.send_text(jid, t.MSG_NO_TV_PASSWORD.format(service=service.value))
                await self.return_to_idle(jid)
                return

            if len(emails) == 1:
                self._enter(jid, FlowState.AWAITING_TV_CODE, service=service, email_options=emails)
                await self.send_text(
                    jid, t.MSG_TV_EMAIL_SINGLE.format(email=emails[0], length=self.config.tv_code_length)
                )
            else:
                self._enter(jid, FlowState.AWAITING_TV_EMAIL_PICK, service=service, email_options=emails)
                await self.send_text(jid, t.render_email_menu(service.value, emails))

        await self._locked_step(jid, StepKey.SERVICE_LOOKUP, self.config.tv_lookup_lock_ttl_ms, work)

    async def _manual_email(self, jid: str, text: str) -> None:
        email = text.strip()
        if not t.is_email(email):
            await self.send_text(jid, t.MSG_INVALID_EMAIL)
            return

        async def work() -> None:
            service = self.sessions.get(jid).service or MENU_SERVICES["1"]
            await self._reply_codes(
                jid,
                service,
                email,
                t.MSG_VALIDATING_EMAIL.format(email=email),
                DELAY["validate_ack"],
                DELAY["validate_min"],
            )

        await self._locked_step(jid, StepKey.CODE_LOOKUP, self.config.code_lookup_lock_ttl_ms, work)

    async def _tv_code(self, jid: str, text: str) -> None:
        code = text.strip()
        length = self.config.tv_code_length
        if not re.fullmatch(rf"\d{{{length}}}", code):
            await self.send_text(jid, t.MSG_TV_CODE_FORMAT.format(length=length, example=t.tv_code_example(length)))
            return

        async def work() -> None:
            try:
                await self._submit_tv_code(jid, code)
            finally:
                await self.return_to_idle(jid)

        if not await self.locks.with_lock(jid, StepKey.CODE_LOOKUP, self.config.tv_code_lock_ttl_ms, work):
            await self.busy(jid)

    async def _submit_tv_code(self, jid: str, code: str) -> None:
        email = self.sessions.get(jid).selected_email
        try:
            password = await self._tv_password(jid_to_number(jid))
        except Exception as e:
            logger.error(f"Credential lookup failed: {e}", exc_info=True, extra={"context": {"jid": jid}})
            await self.send_text(jid, t.MSG_LOOKUP_ERROR)
            return
        if not email or not password:
            await self.send_text(jid, t.MSG_NO_TV_PASSWORD.format(service=TV_SERVICE.value))
            return

        await self.send_text(jid, t.MSG_TV_PROCESSING)
        try:
            result = await self.automation.verify_tv_code(email, password, code)
        except Exception as e:
            logger.error(f"TV login automation crashed: {e}", exc_info=True, extra={"context": {"jid": jid}})
            await alert_service.notify(
                alert_service.alert_error, "TV login automation crashed", {"jid": jid, "error": str(e)}
            )
            await self.send_text(jid, t.MSG_TV_ERROR.format(error=e))
            return

        if not result.ok:
            logger.info(f"TV code rejected: {result.describe_error()}", extra={"context": {"jid": jid}})
            await self.send_text(jid, result.error or t.MSG_TV_ERROR.format(error=result.error_code))
            return

        await self.send_text(jid, result.value.message)
        if result.value.screenshot:
            try:
                await self.transport.send_image(jid, result.value.screenshot, t.MSG_TV_SCREENSHOT_CAPTION)
            except TransportError as e:
                logger.error(f"Screenshot delivery failed: {e}", extra={"context": {"jid": jid}})

    async def _menu_request(self, jid: str, text: str) -> None:
        if self.locks.any_locked(jid):
            await self.busy(jid, t.MSG_BUSY_MENU)
            return
        self.sessions.clear(jid)
        await self.menu_gate.try_send(jid, notify_if_cooldown=True)

    async def _fallback(self, jid: str, text: str) -> None:
        await self.send_text(jid, t.MSG_INVALID_OPTION)
        await self.pacer.pause(DELAY["invalid_ack"])
        await self.menu_gate.try_send(jid)
