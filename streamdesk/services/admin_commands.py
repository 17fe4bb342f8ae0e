"""`#` commands for operators.

Every command except `#help` needs the caller's number in ADMIN_NUMBERS.
Reports are read-only queries rendered by `report_formatter`.
"""

from datetime import date, timedelta
from typing import TYPE_CHECKING, Awaitable, Callable

from streamdesk.logging_config import get_logger
from streamdesk.services import report_formatter as fmt
from streamdesk.services import templates as t
from streamdesk.services.analytics_service import AnalyticsService
from streamdesk.services.health_service import get_system_health
from streamdesk.services.media_service import file_info
from streamdesk.services.pacing import DELAY

if TYPE_CHECKING:
    from streamdesk.services.orchestrator import ConversationOrchestrator

logger = get_logger("admin_commands")

MSG_ADMIN_HINT = "\n\nℹ️ Eres admin: usa *#helpadmin* para ver todos los comandos."
MSG_RESET_DONE = "♻️ Estado reiniciado para este chat."
MSG_MAINTENANCE_ON = "🛠️ Modo mantenimiento: *ON*"
MSG_MAINTENANCE_OFF = "🟢 Modo mantenimiento: *OFF*"
MSG_MAINTENANCE_USAGE = "Uso: #maintenance on|off"

Handler = Callable[[str, str, list[str]], Awaitable[None]]


def int_arg(parts: list[str], index: int, default: int, minimum: int = 1) -> int:
    """Positional integer argument clamped to `minimum`, `default` when absent or not a number."""
    if len(parts) <= index:
        return default
    try:
        value = int(parts[index])
    except ValueError:
        return default
    return max(minimum, value) if value else default


class AdminCommands:
    def __init__(self, bot: "ConversationOrchestrator", analytics: AnalyticsService):
        self.bot = bot
        self.analytics = analytics
        self._handlers: dict[str, Handler] = {
            "#help": self._help,
            "#helpadmin": self._help_admin,
            "#whoami": self._whoami,
            "#maintenance": self._maintenance,
            "#reset": self._reset,
            "#services": self._services,
            "#health": self._health,
            "#checkmedia": self._check_media,
            "#stats": self._stats,
            "#codes": self._codes,
            "#mails": self._mails,
            "#topcorreos": self._top_emails,
            "#dup": self._dup,
            "#findnum": self._find_number,
            "#findmail": self._find_mail,
            "#renovar": self._due,
            "#renovar1": self._due_tomorrow,
            "#vencidos": self._expired,
            "#dashboard": self._dashboard,
        }
        self._public = {"#help"}

    @property
    def commands(self) -> list[str]:
        return list(self._handlers)

    async def dispatch(self, jid: str, number: str, text: str) -> bool:
        """Run the command in `text`. False when it is not a known command."""
        parts = text.split()
        handler = self._handlers.get(parts[0]) if parts else None
        if handler is None:
            return False
        if parts[0] not in self._public and not self.bot.is_admin(number):
            logger.info("Admin command denied", extra={"context": {"number": number, "command": parts[0]}})
            await self.bot.send_text(jid, t.MSG_NO_PERMISSION)
            return True
        logger.info("Admin command", extra={"context": {"number": number, "command": parts[0]}})
        await handler(jid, number, parts)
        return True

    async def _report(self, jid: str, ack: str, build: Callable[[], Awaitable[str]]) -> None:
        await self.bot.pacer.send_ack_and_hold(jid, ack, DELAY["admin_ack"])
        try:
            reply = await self.bot.pacer.with_typing(jid, build, DELAY["admin_min"])
        except Exception as e:
            logger.error(f"Admin report failed: {e}", exc_info=True)
            reply = f"❌ Error: {e}"
        await self.bot.send_text(jid, reply)

    # === UTILITY ===

    async def _help(self, jid: str, number: str, parts: list[str]) -> None:
        await self.bot.pacer.send_ack_and_hold(jid, "📖 Enviando ayuda…", 500)
        await self.bot.send_text(jid, t.HELP_USER + (MSG_ADMIN_HINT if self.bot.is_admin(number) else ""))

    async def _help_admin(self, jid: str, number: str, parts: list[str]) -> None:
        await self.bot.pacer.send_ack_and_hold(jid, "📖 Enviando ayuda admin…", 500)
        await self.bot.send_text(jid, t.HELP_ADMIN)

    async def _whoami(self, jid: str, number: str, parts: list[str]) -> None:
        await self.bot.send_text(
            jid, f"num: {number}\nadmin: {self.bot.is_admin(number)}\nadmins: {','.join(sorted(self.bot.admins))}"
        )

    async def _maintenance(self, jid: str, number: str, parts: list[str]) -> None:
        arg = parts[1] if len(parts) > 1 else ""
        if arg == "on":
            self.bot.maintenance = True
            await self.bot.send_text(jid, MSG_MAINTENANCE_ON)
        elif arg == "off":
            self.bot.maintenance = False
            await self.bot.send_text(jid, MSG_MAINTENANCE_OFF)
        else:
            await self.bot.send_text(jid, MSG_MAINTENANCE_USAGE)
            return
        logger.info("Maintenance toggled", extra={"context": {"maintenance": self.bot.maintenance}})

    async def _reset(self, jid: str, number: str, parts: list[str]) -> None:
        self.bot.reset_conversation(jid)
        await self.bot.send_text(jid, MSG_RESET_DONE)
        await self.bot.menu_gate.try_send(jid)
        logger.info("Conversation reset", extra={"context": {"jid": jid}})

    async def _check_media(self, jid: str, number: str, parts: list[str]) -> None:
        info = file_info(self.bot.config.tutorial_video_path)
        if not info.exists:
            await self.bot.send_text(jid, f"❌ No existe {self.bot.config.tutorial_video_path}")
            return
        await self.bot.send_text(
            jid,
            f"📁 tutorial\n• Ruta: {info.path}\n• Tamaño: {info.size_mb} MB\n• MTime: {info.mtime:%Y-%m-%d %H:%M:%S}",
        )

    async def _health(self, jid: str, number: str, parts: list[str]) -> None:
        async def build() -> str:
            health = await get_system_health(self.bot, self.analytics)
            guards = health["guards"]
            lines = [
                "🩺 *Health check*",
                f"• WA transport: {'🟢 OK' if health['transport'] == 'open' else '🟡 ' + health['transport']}",
                f"• DB MySQL: {'🟢 OK' if health['database'] == 'ok' else '🔴 ERROR'}",
                f"• Sesiones: {guards['sessions']} | Candados: {guards['active_locks']}",
                f"• Mantenimiento: {'ON' if guards['maintenance'] else 'OFF'}",
            ]
            if health["database"] == "ok":
                lines += ["", fmt.format_general_summary(await self.analytics.general_summary())]
            return "\n".join(lines)

        await self._report(jid, "🩺 Verificando estado…", build)

    # === REPORTS ===

    async def _services(self, jid: str, number: str, parts: list[str]) -> None:
        async def build() -> str:
            return fmt.format_services(await self.analytics.platforms(), await self.analytics.code_services())

        await self._report(jid, "🔎 Descubriendo servicios…", build)

    async def _stats(self, jid: str, number: str, parts: list[str]) -> None:
        platform = parts[1] if len(parts) > 1 else None

        async def build() -> str:
            if not platform:
                return fmt.format_general_summary(await self.analytics.general_summary())
            clients = fmt.format_platform_summary(await self.analytics.platform_summary(platform))
            codes = await self.analytics.code_summary(platform)
            return f"{clients}\n\n{fmt.format_code_summary(codes)}" if codes else clients

        await self._report(jid, "📊 Calculando estadísticas…", build)

    async def _codes(self, jid: str, number: str, parts: list[str]) -> None:
        if len(parts) < 2:
            await self.bot.send_text(jid, "⚠️ Uso: #codes <servicioEnCodes> [limit=10]")
            return
        limit = int_arg(parts, 2, 10)

        async def build() -> str:
            service, rows = await self.analytics.recent_codes(parts[1], limit)
            return fmt.format_codes(rows, service)

        await self._report(jid, f"🧩 Revisando códigos de {parts[1]}…", build)

    async def _mails(self, jid: str, number: str, parts: list[str]) -> None:
        if len(parts) < 2:
            await self.bot.send_text(jid, "Uso: #mails <plataforma> [limit=100]")
            return
        limit = int_arg(parts, 2, 100)

        async def build() -> str:
            platform, rows = await self.analytics.emails_by_platform(parts[1], limit)
            return fmt.format_platform_emails(rows, platform)

        await self._report(jid, f"✉️ Listando correos de {parts[1]}…", build)

    async def _top_emails(self, jid: str, number: str, parts: list[str]) -> None:
        if len(parts) < 2:
            await self.bot.send_text(jid, "Uso: #topcorreos <plataforma> [limit=20]")
            return
        limit = int_arg(parts, 2, 20)

        async def build() -> str:
            platform, rows = await self.analytics.emails_by_platform(parts[1], limit)
            return fmt.format_top_emails(rows, platform)

        await self._report(jid, f"📈 Top correos en {parts[1]}…", build)

    async def _dup(self, jid: str, number: str, parts: list[str]) -> None:
        platform = None
        min_count = 2
        if len(parts) > 1:
            if parts[1].lstrip("-").isdigit():
                min_count = max(2, int(parts[1]))
            else:
                platform = parts[1]
                if len(parts) > 2 and parts[2].lstrip("-").isdigit():
                    min_count = max(2, int(parts[2]))

        async def build() -> str:
            rows = await self.analytics.repeated_credentials(min_count, 30, platform)
            title = f"Repetidos {platform} (min={min_count})" if platform else f"Repetidos (min={min_count})"
            return fmt.format_repeated(rows, title)

        await self._report(jid, "🔁 Buscando repetidos…", build)

    async def _find_number(self, jid: str, number: str, parts: list[str]) -> None:
        if len(parts) < 2:
            await self.bot.send_text(jid, "Uso: #findnum <numeroSinPrefijo> [plataforma]")
            return
        target = parts[1]
        platform = parts[2] if len(parts) > 2 else None

        async def build() -> str:
            return fmt.format_accounts_compact(await self.analytics.find_by_number(target, platform))

        await self._report(jid, f"🔎 Buscando por número {target}{' en ' + platform if platform else ''}…", build)

    async def _find_mail(self, jid: str, number: str, parts: list[str]) -> None:
        if len(parts) < 2:
            await self.bot.send_text(jid, "Uso: #findmail <texto>")
            return

        async def build() -> str:
            return fmt.format_accounts_compact(await self.analytics.find_by_email(parts[1]))

        await self._report(jid, f'🔎 Buscando correos que contengan "{parts[1]}"…', build)

    async def _due(self, jid: str, number: str, parts: list[str]) -> None:
        days = int_arg(parts, 1, 3)
        limit = int_arg(parts, 2, 30)

        async def build() -> str:
            return fmt.format_due(await self.analytics.due_for_renewal(days, limit), days)

        await self._report(jid, f"⏳ Buscando cuentas por renovar (≤ {days} días)…", build)

    async def _due_tomorrow(self, jid: str, number: str, parts: list[str]) -> None:
        limit = int_arg(parts, 1, 50)

        async def build() -> str:
            return fmt.format_accounts_compact(await self.analytics.ending_on(date.today() + timedelta(days=1), limit))

        await self._report(jid, "⏳ Buscando cuentas con 1 día restante…", build)

    async def _expired(self, jid: str, number: str, parts: list[str]) -> None:
        limit = int_arg(parts, 1, 30)

        async def build() -> str:
            return fmt.format_expired(await self.analytics.expired_accounts(limit))

        await self._report(jid, "❌ Buscando cuentas vencidas…", build)

    async def _dashboard(self, jid: str, number: str, parts: list[str]) -> None:
        due_limit = int_arg(parts, 1, 25)
        expired_limit = int_arg(parts, 2, 25)

        async def build() -> str:
            today = date.today()
            blocks = [fmt.format_dashboard(await self.analytics.dashboard())]
            due = await self.analytics.ending_on(today + timedelta(days=1), due_limit)
            blocks.append(fmt.format_dashboard_list("⏳ *Por renovar (1 día)*", due, due_limit))
            expired = await self.analytics.ended_before(today, expired_limit)
            blocks.append(fmt.format_dashboard_list("❌ *Vencidos*", expired, expired_limit))
            return "\n\n".join(blocks)

        await self._report(jid, "📊 Calculando dashboard…", build)
