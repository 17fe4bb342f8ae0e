import asyncio
from datetime import date, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from streamdesk.services import templates as t
from streamdesk.services.admin_commands import MSG_MAINTENANCE_ON, MSG_RESET_DONE, int_arg
from streamdesk.services.analytics_service import NotFoundError

from tests.conftest import ADMIN_JID, CUSTOMER_JID


def send(orchestrator, text, jid=ADMIN_JID):
    asyncio.run(orchestrator.handle_message(jid, text))


class TestIntArg:
    @pytest.mark.parametrize(
        "parts,expected",
        [
            (["#renovar"], 3),
            (["#renovar", "7"], 7),
            (["#renovar", "x"], 3),
            (["#renovar", "0"], 3),
            (["#renovar", "-4"], 1),
        ],
    )
    def test_parsing(self, parts, expected):
        assert int_arg(parts, 1, 3) == expected


class TestPermissions:
    def test_help_is_public(self, orchestrator, transport):
        send(orchestrator, "#help", jid=CUSTOMER_JID)
        assert transport.texts()[-1] == t.HELP_USER

    def test_admin_help_mentions_admin_commands(self, orchestrator, transport):
        send(orchestrator, "#help")
        assert "#helpadmin" in transport.texts()[-1]

    def test_non_admin_is_refused(self, orchestrator, transport, analytics):
        send(orchestrator, "#stats", jid=CUSTOMER_JID)
        assert transport.texts() == [t.MSG_NO_PERMISSION]
        analytics.general_summary.assert_not_awaited()

    def test_unknown_command_falls_through_to_flow(self, orchestrator, transport):
        orchestrator.welcomed.add(CUSTOMER_JID)
        send(orchestrator, "#hola", jid=CUSTOMER_JID)
        assert transport.texts()[0] == t.MSG_INVALID_OPTION

    def test_commands_skip_whitelist(self, orchestrator, transport, repository):
        repository.whitelist_numbers.return_value = []
        send(orchestrator, "#whoami")
        assert "admin: True" in transport.texts()[-1]


class TestUtilityCommands:
    def test_maintenance_toggle(self, orchestrator, transport, clock):
        send(orchestrator, "#maintenance on")
        assert orchestrator.maintenance is True
        assert transport.texts()[-1] == MSG_MAINTENANCE_ON

        clock.advance(3_000)
        send(orchestrator, "#maintenance off")
        assert orchestrator.maintenance is False

    def test_reset(self, orchestrator, transport):
        orchestrator.welcomed.add(ADMIN_JID)
        send(orchestrator, "#reset")
        assert ADMIN_JID not in orchestrator.welcomed
        assert transport.texts() == [MSG_RESET_DONE, t.MENU_TEXT]

    def test_checkmedia_reports_missing_file(self, orchestrator, transport, test_settings):
        send(orchestrator, "#checkmedia")
        assert transport.texts()[-1] == f"❌ No existe {test_settings.tutorial_video_path}"

    def test_health(self, orchestrator, transport, analytics):
        send(orchestrator, "#health")
        reply = transport.texts()[-1]
        assert "🩺 *Health check*" in reply
        assert "DB MySQL: 🟢 OK" in reply
        assert "🟡 closed" in reply
        assert "Resumen general" in reply


class TestReports:
    def test_stats_global(self, orchestrator, transport):
        send(orchestrator, "#stats")
        texts = transport.texts()
        assert texts[0] == "📊 Calculando estadísticas…"
        assert "👥 Total: 3" in texts[1]
        assert "• Netflix: 2" in texts[1]

    def test_stats_platform_with_codes(self, orchestrator, transport, analytics):
        analytics.platform_summary = AsyncMock(
            return_value={
                "platform": "Netflix",
                "total": 2,
                "emails": 2,
                "unique_emails": 1,
                "passwords": 2,
                "with_pin": 0,
                "active": 2,
                "expired": 0,
            }
        )
        analytics.code_summary = AsyncMock(
            return_value={
                "service": "Netflix",
                "total": 4,
                "codes_in_mail": 1,
                "codes_in_url": 2,
                "links_in_url": 1,
                "distinct_mails": 2,
            }
        )
        send(orchestrator, "#stats netflix")
        analytics.platform_summary.assert_awaited_once_with("netflix")
        reply = transport.texts()[-1]
        assert "📊 *Netflix (CLIENTES)*" in reply
        assert "🧩 *Netflix (CODES)*" in reply

    def test_codes_usage(self, orchestrator, transport):
        send(orchestrator, "#codes")
        assert transport.texts() == ["⚠️ Uso: #codes <servicioEnCodes> [limit=10]"]

    def test_unknown_service_reports_error(self, orchestrator, transport, analytics):
        analytics.recent_codes = AsyncMock(side_effect=NotFoundError('Servicio (codes) no encontrado: "hbo"'))
        send(orchestrator, "#codes hbo 5")
        analytics.recent_codes.assert_awaited_once_with("hbo", 5)
        assert transport.texts()[-1] == '❌ Error: Servicio (codes) no encontrado: "hbo"'

    def test_dup_with_platform_and_minimum(self, orchestrator, transport, analytics):
        analytics.repeated_credentials = AsyncMock(
            return_value=[{"platform": "PrimeVideo", "email": "x@y.com", "password": "p", "times": 3}]
        )
        send(orchestrator, "#dup prime 3")
        analytics.repeated_credentials.assert_awaited_once_with(3, 30, "prime")
        assert "🔁 *Repetidos prime (min=3)*" in transport.texts()[-1]

    def test_renovar(self, orchestrator, transport, analytics):
        analytics.due_for_renewal = AsyncMock(return_value=[])
        send(orchestrator, "#renovar 5 10")
        analytics.due_for_renewal.assert_awaited_once_with(5, 10)
        assert transport.texts()[-1] == "No hay cuentas a renovar (≤ 5 días)."

    def test_findnum(self, orchestrator, transport, analytics):
        analytics.find_by_number = AsyncMock(
            return_value=[
                SimpleNamespace(number="3312345678", platform="Netflix", email="a@x.com", password="p", days_left=4)
            ]
        )
        send(orchestrator, "#findnum 3312345678 netflix")
        analytics.find_by_number.assert_awaited_once_with("3312345678", "netflix")
        assert "a@x.com | p · DR:4" in transport.texts()[-1]

    def test_dashboard(self, orchestrator, transport, analytics):
        analytics.dashboard = AsyncMock(
            return_value={"total": 1, "active": 1, "due_tomorrow": 0, "expired": 0, "platforms": []}
        )
        analytics.ending_on = AsyncMock(return_value=[])
        analytics.ended_before = AsyncMock(return_value=[])
        send(orchestrator, "#dashboard 5")

        assert analytics.ending_on.await_args[0][1] == 5
        assert analytics.ended_before.await_args[0][1] == 25
        reply = transport.texts()[-1]
        assert "📊 *Dashboard (Global)*" in reply
        assert "⏳ *Por renovar (1 día)*\nNo hay cuentas." in reply

    def test_renovar1_lists_accounts_ending_tomorrow(self, orchestrator, transport, analytics):
        analytics.ending_on = AsyncMock(
            return_value=[
                SimpleNamespace(number="3312345678", platform="Netflix", email="a@x.com", password=None, days_left=1)
            ]
        )
        send(orchestrator, "#renovar1 7")

        analytics.ending_on.assert_awaited_once_with(date.today() + timedelta(days=1), 7)
        texts = transport.texts()
        assert texts[0] == "⏳ Buscando cuentas con 1 día restante…"
        assert texts[-1] == "1. 3312345678 · [Netflix]\n   a@x.com · DR:1"

    def test_topcorreos(self, orchestrator, transport, analytics):
        analytics.emails_by_platform = AsyncMock(return_value=("Netflix", [("a@x.com", 4), ("b@x.com", 2)]))
        send(orchestrator, "#topcorreos netflix")

        analytics.emails_by_platform.assert_awaited_once_with("netflix", 20)
        assert transport.texts()[-1] == "1. a@x.com · ×4\n2. b@x.com · ×2"

    def test_topcorreos_usage(self, orchestrator, transport, analytics):
        send(orchestrator, "#topcorreos")
        assert transport.texts() == ["Uso: #topcorreos <plataforma> [limit=20]"]

    def test_topcorreos_requires_admin(self, orchestrator, transport):
        send(orchestrator, "#topcorreos netflix", jid=CUSTOMER_JID)
        assert transport.texts() == [t.MSG_NO_PERMISSION]
