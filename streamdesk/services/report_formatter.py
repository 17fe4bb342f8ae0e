"""WhatsApp-ready text blocks for the admin reports."""

from typing import Optional

NO_DATA = "Sin datos."
NO_RESULTS = "Sin resultados."


def _fmt_date(value) -> str:
    return value.strftime("%Y-%m-%d") if value else ""


def format_general_summary(summary: Optional[dict]) -> str:
    if not summary:
        return NO_DATA
    head = "\n".join(
        [
            "📊 *Resumen general (CLIENTES)*",
            f"👥 Total: {summary['total']}",
            f"✉️ Correos: {summary['emails']} (únicos: {summary['unique_emails']})",
            f"🔑 Contraseñas registradas: {summary['passwords']}",
            f"🔒 Perfiles con PIN: {summary['with_pin']}",
            f"⏳ Activos: {summary['active']} | Vencidos: {summary['expired']}",
        ]
    )
    platforms = "\n".join(f"• {name}: {count}" for name, count in summary.get("platforms", []))
    return f"{head}\n\n🎬 *Por plataforma*\n{platforms}" if platforms else head


def format_platform_summary(summary: Optional[dict]) -> str:
    if not summary:
        return NO_DATA
    return "\n".join(
        [
            f"📊 *{summary['platform']} (CLIENTES)*",
            f"👥 Total: {summary['total']}",
            f"✉️ Correos: {summary['emails']} (únicos: {summary['unique_emails']})",
            f"🔑 Contraseñas registradas: {summary['passwords']}",
            f"🔒 Perfiles con PIN: {summary['with_pin']}",
            f"⏳ Activos: {summary['active']} | Vencidos: {summary['expired']}",
        ]
    )


def format_code_summary(summary: Optional[dict]) -> str:
    if not summary:
        return NO_DATA
    return "\n".join(
        [
            f"🧩 *{summary['service']} (CODES)*",
            f"🗂️ Registros: {summary['total']}",
            f"🔢 Códigos en mail: {summary['codes_in_mail']} | en url: {summary['codes_in_url']}",
            f"🔗 Links en url (no-código): {summary['links_in_url']}",
            f"📧 Mails distintos: {summary['distinct_mails']}",
        ]
    )


def format_services(platforms: list[str], code_services: list[str]) -> str:
    if platforms:
        first = "🎬 *Plataformas en CLIENTES:*\n• " + "\n• ".join(platforms)
    else:
        first = "🎬 *Plataformas en CLIENTES:* (vacío)"
    if code_services:
        second = "🧩 *Servicios en CODES:*\n• " + "\n• ".join(code_services)
    else:
        second = "🧩 *Servicios en CODES:* (vacío)"
    return f"{first}\n\n{second}"


def format_repeated(rows: list[dict], title: str = "Repetidos") -> str:
    if not rows:
        return "No hay repetidos con ese umbral."
    lines = [
        f"{i}. [{row['platform']}] ×{row['times']}\n   {row['email']} | {row['password'] or ''}"
        for i, row in enumerate(rows, start=1)
    ]
    return f"🔁 *{title}*\n" + "\n".join(lines)


def format_codes(rows, service: str) -> str:
    if not rows:
        return f"Sin códigos para {service}."
    lines = [f"{i}. {row.mail or ''} {'| ' + row.url if row.url else ''}".rstrip() for i, row in enumerate(rows, start=1)]
    return f"🧩 *Códigos recientes – {service}*\n" + "\n".join(lines)


def _account_line(i: int, row) -> str:
    return (
        f"{i}. {row.number} · [{row.platform}]\n"
        f"   {row.email} · DR:{row.days_left} · Fin:{_fmt_date(row.ends_on)}"
    )


def format_due(rows, days: int) -> str:
    if not rows:
        return f"No hay cuentas a renovar (≤ {days} días)."
    return f"⏳ *Por renovar (≤ {days} días)*\n" + "\n".join(_account_line(i, r) for i, r in enumerate(rows, start=1))


def format_expired(rows) -> str:
    if not rows:
        return "No hay cuentas vencidas."
    return "❌ *Vencidas*\n" + "\n".join(_account_line(i, r) for i, r in enumerate(rows, start=1))


def format_platform_emails(rows: list[tuple[str, int]], platform: str) -> str:
    if not rows:
        return f"No hay correos en {platform}."
    lines = [f"{i}. {email} · ×{count}" for i, (email, count) in enumerate(rows, start=1)]
    return f"✉️ *Correos en {platform}*\n" + "\n".join(lines)


def format_top_emails(rows: list[tuple[str, int]], platform: str) -> str:
    if not rows:
        return f"Sin correos frecuentes en {platform}."
    return "\n".join(f"{i}. {email} · ×{count}" for i, (email, count) in enumerate(rows, start=1))


def format_accounts_compact(rows) -> str:
    if not rows:
        return NO_RESULTS
    lines = []
    for i, row in enumerate(rows, start=1):
        line = f"{i}. {row.number or ''} · [{row.platform or ''}]\n   {row.email or ''}"
        if row.password:
            line += f" | {row.password}"
        if row.days_left is not None:
            line += f" · DR:{row.days_left}"
        lines.append(line)
    return "\n".join(lines)


def format_dashboard(data: Optional[dict]) -> str:
    if not data:
        return "📊 *Dashboard (Global)*\nSin datos"
    head = "\n".join(
        [
            "📊 *Dashboard (Global)*",
            f"👥 Total: {data['total']}",
            f"🟢 Activos: {data['active']}",
            f"⏳ Por renovar (1 día): {data['due_tomorrow']}",
            f"❌ Vencidos: {data['expired']}",
        ]
    )
    platforms = data.get("platforms") or []
    if not platforms:
        return f"{head}\n\nNo hay plataformas registradas."
    lines = [
        f"• {p['platform']}: total {p['total']} | 🟢 {p['active']} | ⏳ {p['due_tomorrow']} | ❌ {p['expired']}"
        for p in platforms
    ]
    return f"{head}\n\n🎬 *Por plataforma*\n" + "\n".join(lines)


def format_dashboard_list(title: str, rows, limit: int) -> str:
    if not rows:
        return f"{title}\nNo hay cuentas."
    return f"{title} – top {limit}\n{format_accounts_compact(rows)}"
