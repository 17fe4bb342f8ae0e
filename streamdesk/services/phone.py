import re

WHATSAPP_SUFFIX = "@s.whatsapp.net"


def jid_to_number(jid: str) -> str:
    """`5213312345678@s.whatsapp.net` -> `3312345678` (strip server part and the 521 mobile prefix)."""
    number = (jid or "").split("@", 1)[0]
    return re.sub(r"^521", "", number)


def normalize_local(number: str | None) -> str:
    """Last 10 local digits, without the 52 country code."""
    digits = re.sub(r"\D", "", str(number or ""))
    return re.sub(r"^52", "", digits)[-10:]


def strip_country_code(number: str) -> str:
    if number.startswith("52") and len(number) > 10:
        return number[2:]
    return number


def jid_from_local(number: str | None) -> str:
    return f"521{normalize_local(number)}{WHATSAPP_SUFFIX}"


def parse_number_list(raw: str | None) -> list[str]:
    """Comma-separated numbers; `#` starts a comment inside an entry."""
    entries = [entry.split("#", 1)[0].strip() for entry in (raw or "").split(",")]
    return [normalize_local(entry) for entry in entries if entry]
