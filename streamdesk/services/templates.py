"""User-facing texts for the WhatsApp flow."""

import re
from datetime import date

HEADER = "╔═ ✨ *StreamingPlus* ✨ ═╗"
FOOTER = "╚═══════════════════╝"

MENU_TEXT = "\n".join(
    [
        HEADER,
        "   🤖 *MENÚ PRINCIPAL*",
        "─────────────────────",
        "0️⃣  ➝ *Datos de acceso*",
        "1️⃣  ➝ *Código Netflix*",
        "2️⃣  ➝ *Código TV Netflix (8 dígitos)*",
        "3️⃣  ➝ *Código Prime Video*",
        "",
        "✍️ Responde con el *número* de la opción.",
        FOOTER,
    ]
)

MENU_IMAGE_CAPTION = (
    "✨ Para más plataformas y promociones visita https://www.streamingplus.store ✨\n🙌 Estamos para servirte."
)

HELP_USER = "\n".join(
    [
        "🤖 *Ayuda (usuario)*",
        "",
        "Menú principal:",
        "  0️⃣  Datos de acceso",
        "  1️⃣  Código Netflix",
        "  2️⃣  Código TV Netflix (8 dígitos)",
        "  3️⃣  Código PrimeVideo",
        "",
        "Extras:",
        "  escribe: *menu*  → reenvía el menú",
    ]
)

HELP_ADMIN = "\n".join(
    [
        "🛠️ *Ayuda admin*",
        "",
        "📊 Resúmenes / Dashboard",
        "  #dashboard [porRenovar=25] [vencidos=25]",
        "  #stats                → global",
        "  #stats <plataforma>   → ej: #stats netflix",
        "",
        "⏳ Renovaciones / Vencidos",
        "  #renovar <días> [limit]",
        "  #renovar1 [limit]",
        "  #vencidos [limit]",
        "",
        "🔎 Búsquedas",
        "  #findnum <numero> [plataforma]",
        "  #findmail <texto>",
        "",
        "✉️ Correos / Códigos",
        "  #mails <plataforma> [limit]",
        "  #topcorreos <plataforma> [limit]",
        "  #codes <servicio_en_codes> [limit]",
        "",
        "🔁 Duplicados",
        "  #dup [min] | #dup <plat> [min]",
        "",
        "🧭 Descubrimiento",
        "  #services",
        "",
        "👤 Utilidad",
        "  #whoami",
        "  #maintenance on|off",
        "  #reset",
        "  #health",
        "  #checkmedia",
    ]
)

# Guards
MSG_BUSY = "⏳ Sigo procesando tu solicitud, por favor espera…"
MSG_BUSY_MENU = "⏳ Estoy procesando tu solicitud, dame unos segundos…"
MSG_RATE_LIMITED = "🚦 Estás enviando mensajes muy rápido. Intenta en un momento."
MSG_QUERY_COOLDOWN = "⏳ Espera {seconds} segundos antes de otra consulta."
MSG_SESSION_EXPIRED = "⌛ Tu sesión anterior expiró por inactividad. Volvamos a empezar."
MSG_ACCESS_DENIED = (
    "🚫 Acceso Denegado\n\nRecuerda haz tu consulta, con tu numero ligado a tu servicio:\n"
    "https://wa.me/5623717393?text=Solicito+acceso"
)
MSG_MAINTENANCE = "🛠️ Estamos en mantenimiento. Intenta más tarde."
MSG_NO_PERMISSION = "🚫 Sin permisos."

# Welcome
MSG_WELCOME = "👋 Bienvenido al bot 🤖 de Streamingplus."
MSG_WELCOME_NAMED = "👋 Bienvenido {name} al bot 🤖 de Streamingplus."
MSG_TUTORIAL_INTRO = "📦 Te enviaré un video explicando cómo usar el bot."
MSG_TUTORIAL_CAPTION = "📽️ Mira el video y sigue las instrucciones."

# Lookups
MSG_QUERYING_DATA = "🔄 Consultando tus datos…"
MSG_UPDATED_AT = "📅 Actualizado al {today}"
MSG_NO_ACCOUNT_DATA = "⚠️ No hay datos para tu número."
MSG_LOOKING_UP_EMAILS = "🔎 Revisando correos vinculados a *{service}*…"
MSG_NO_EMAILS_MANUAL = (
    "✉️ No encontré correos vinculados a *{service}* para tu número.\n"
    "Por favor escribe el correo que quieres consultar."
)
MSG_NO_EMAILS = "⚠️ No encontré correos de *{service}* para tu número."
MSG_SINGLE_EMAIL = "🔍 Usaré el correo detectado: *{email}*"
MSG_SEARCHING_CODE = "🔄 Buscando código de *{service}*…"
MSG_EMAILS_FOUND = "📧 Encontré *{count}* correo(s) para *{service}*."
MSG_CONFIRM_LOOKUP = "🔍 Consultando *{service}* para: *{email}*"
MSG_VALIDATING_EMAIL = "🔍 Validando el correo: {email}"
MSG_NO_CODES = "⚠️ No hay datos para {email} en {service}."
MSG_INVALID_PICK = "⚠️ Opción inválida. Responde con un número del *1* al *{count}*."
MSG_INVALID_EMAIL = "📧 Por favor, envía un correo válido (ej: nombre@dominio.com)."
MSG_LOOKUP_ERROR = "❌ No pude completar la consulta en este momento. Intenta de nuevo más tarde."

# TV code
MSG_NO_TV_PASSWORD = "⚠️ No se encontró la contraseña de *{service}*."
MSG_TV_EMAIL_CHOSEN = "📧 Has elegido: *{email}*.\n✍️ Envía ahora tu *Código TV Netflix* ({length} dígitos)."
MSG_TV_EMAIL_SINGLE = "📧 Usaré el correo: *{email}*.\n✍️ Envía ahora tu *Código TV Netflix* ({length} dígitos)."
MSG_TV_CODE_FORMAT = "⚠️ El código debe tener *{length} dígitos* (ej: {example})."
MSG_TV_PROCESSING = "⏳ Procesando tu código, espera un momento…"
MSG_TV_SCREENSHOT_CAPTION = "📸 Captura de pantalla del ingreso exitoso"
MSG_TV_ERROR = "❌ Error procesando tu código: {error}"

# Idle
MSG_INVALID_OPTION = "⚠️ Opción no válida. Usa los números del menú."

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
SHORT_CODE_PATTERN = re.compile(r"^\d{4}$")


def is_email(text: str) -> bool:
    return bool(EMAIL_PATTERN.match(text))


def render_email_menu(service: str, emails: list[str]) -> str:
    lines = [
        "╔═ ✉️ *Correos vinculados* ═╗",
        f"   Servicio: *{service}*",
        "──────────────────────────",
    ]
    lines.extend(f"{index}️⃣  {email}" for index, email in enumerate(emails, start=1))
    lines.extend(
        [
            "──────────────────────────",
            "Responde con el *número* del correo (ej: 1)",
            "╚══════════════════════════╝",
        ]
    )
    return "\n".join(lines)


def render_code_result(service: str, rows: list) -> str:
    """4-digit values are sign-in codes; anything else in `url` is a link."""
    text = f"✅ Resultado de {service}:\n\n"
    for row in rows:
        mail = str(row.mail or "")
        url = str(row.url or "")
        if SHORT_CODE_PATTERN.match(mail):
            text += f"🔢 Código: {mail}\n"
        if url:
            text += f"🔢 Código: {url}\n" if SHORT_CODE_PATTERN.match(url) else f"🔗 Link: {url}\n"
    return text


def render_account_data(rows: list) -> str:
    text = "✅ Tus datos de acceso:\n\n"
    for row in rows:
        text += (
            f"📺 Plataforma: {row.platform}\n"
            f"📧 Correo: {row.email}\n"
            f"🔑 Contraseña: {row.password}\n"
            f"👤 Perfil: {row.profile}\n"
            f"🔢 PIN: {row.pin}\n"
            f"🗓️ Días restantes: {row.days_left}\n"
            f"📅 Finaliza: {row.ends_on}\n\n"
        )
    return text


def render_updated_at(today: date | None = None) -> str:
    today = today or date.today()
    return MSG_UPDATED_AT.format(today=today.strftime("%d/%m/%Y"))


def tv_code_example(length: int) -> str:
    return "".join(str((index % 9) + 1) for index in range(length))
