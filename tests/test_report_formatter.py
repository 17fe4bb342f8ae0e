from datetime import date
from types import SimpleNamespace

from streamdesk.services import report_formatter as fmt


def _account(**overrides):
    values = {
        "number": "3312345678",
        "platform": "Netflix",
        "email": "ana@mail.com",
        "password": "pw",
        "days_left": 2,
        "ends_on": date(2026, 3, 12),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestSummaries:
    def test_empty_summary(self):
        assert fmt.format_general_summary(None) == fmt.NO_DATA
        assert fmt.format_code_summary(None) == fmt.NO_DATA

    def test_general_summary_lists_platforms(self):
        text = fmt.format_general_summary(
            {
                "total": 2,
                "emails": 2,
                "unique_emails": 1,
                "passwords": 2,
                "with_pin": 0,
                "active": 1,
                "expired": 1,
                "platforms": [("Netflix", 2)],
            }
        )
        assert "⏳ Activos: 1 | Vencidos: 1" in text
        assert text.endswith("🎬 *Por plataforma*\n• Netflix: 2")

    def test_services(self):
        assert fmt.format_services([], ["Netflix"]) == (
            "🎬 *Plataformas en CLIENTES:* (vacío)\n\n🧩 *Servicios en CODES:*\n• Netflix"
        )


class TestListings:
    def test_due(self):
        text = fmt.format_due([_account()], 3)
        assert text.startswith("⏳ *Por renovar (≤ 3 días)*")
        assert "DR:2 · Fin:2026-03-12" in text
        assert fmt.format_due([], 3) == "No hay cuentas a renovar (≤ 3 días)."

    def test_codes(self):
        rows = [SimpleNamespace(mail="4821", url=None), SimpleNamespace(mail="a@x.com", url="https://x")]
        assert fmt.format_codes(rows, "Netflix") == (
            "🧩 *Códigos recientes – Netflix*\n1. 4821\n2. a@x.com | https://x"
        )

    def test_compact_accounts_skip_missing_fields(self):
        text = fmt.format_accounts_compact([_account(password=None, days_left=None)])
        assert text == "1. 3312345678 · [Netflix]\n   ana@mail.com"
        assert fmt.format_accounts_compact([]) == fmt.NO_RESULTS

    def test_repeated(self):
        rows = [{"platform": "Netflix", "email": "a@x.com", "password": None, "times": 3}]
        assert fmt.format_repeated(rows, "Repetidos (min=2)") == "🔁 *Repetidos (min=2)*\n1. [Netflix] ×3\n   a@x.com | "

    def test_dashboard_list(self):
        assert fmt.format_dashboard_list("❌ *Vencidos*", [], 25) == "❌ *Vencidos*\nNo hay cuentas."
        assert fmt.format_dashboard_list("❌ *Vencidos*", [_account()], 5).startswith("❌ *Vencidos* – top 5\n1. ")
