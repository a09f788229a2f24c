"""Pure rendering of alert events into channel payloads.

Nothing here performs I/O or reads configuration: each function maps an
``AlertEvent`` (plus a few display options) to the payload a transport
posts. Parsers for the structured payloads are provided so the mapping can
be checked in both directions.
"""

from typing import Any

from freezewatch.alerts.schemas import AlertEvent

DISCORD_STATUS = {
    "alert": "🚨 Out of Range",
    "recover": "✅ Recovered (back in range)",
    "fault": "⚠️ Sensor Fault",
    "offline": "❌ Offline",
    "online": "🟢 Online",
    "heartbeat": "ℹ️ Heartbeat",
}

_KIND_FOOTER_PREFIX = "kind="
_BOUNDS_SEPARATOR = "…"
_BOUNDS_UNIT = " °C"


def format_number(value: float) -> str:
    """Shortest text for a reading that parses back to the same float."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def format_fault_code(fault_code: int | None) -> str:
    return f"0x{(fault_code or 0) & 0xFFFFFFFF:x}"


def render_email(event: AlertEvent) -> dict[str, str]:
    """Subject and plain-text body for mail-like channels."""
    device = event.device_id
    when = event.when.isoformat()
    lower = format_number(event.lower_bound)
    upper = format_number(event.upper_bound)
    temp = format_number(event.temperature) if event.temperature is not None else "—"

    if event.kind == "alert":
        subject = f"🚨 {device} out of range: {temp}°C (bounds {lower}..{upper})"
        text = f"[{when}] ALERT: {device} at {temp}°C (bounds {lower}..{upper})"
    elif event.kind == "recover":
        subject = f"✅ {device} recovered: {temp}°C within bounds"
        text = f"[{when}] RECOVERED: {device} at {temp}°C within bounds ({lower}..{upper})"
    elif event.kind == "fault":
        code = format_fault_code(event.fault_code)
        subject = f"⚠️ {device} sensor fault (sr={code})"
        text = f"[{when}] FAULT: {device} status={code}"
    elif event.kind == "offline":
        subject = f"❌ {device} offline (no data)"
        text = f"[{when}] OFFLINE: {device} missed heartbeats"
    elif event.kind == "online":
        subject = f"🟢 {device} back online"
        text = f"[{when}] ONLINE: {device} resumed sending data"
    else:
        subject = f"ℹ️ {device} heartbeat"
        text = f"[{when}] HEARTBEAT: {device} t={temp}°C"

    return {"subject": subject, "text": text}


def render_discord(
    event: AlertEvent,
    username: str | None = None,
    avatar_url: str | None = None,
) -> dict[str, Any]:
    """Webhook body with a short content line and one embed."""
    status = DISCORD_STATUS.get(event.kind, DISCORD_STATUS["alert"])
    content = f"{status}: **{event.device_id}**"
    if event.temperature is not None:
        content += f" at {format_number(event.temperature)}°C"

    temp = format_number(event.temperature) if event.temperature is not None else "—"
    bounds = (
        f"{format_number(event.lower_bound)}{_BOUNDS_SEPARATOR}"
        f"{format_number(event.upper_bound)}{_BOUNDS_UNIT}"
    )
    embed = {
        "title": event.device_id,
        "description": status,
        "fields": [
            {"name": "Temp (°C)", "value": temp, "inline": True},
            {"name": "Bounds", "value": bounds, "inline": True},
        ],
        "footer": {"text": f"{_KIND_FOOTER_PREFIX}{event.kind}"},
        "timestamp": event.when.isoformat(),
    }

    payload: dict[str, Any] = {"content": content, "embeds": [embed]}
    if username:
        payload["username"] = username
    if avatar_url:
        payload["avatar_url"] = avatar_url
    return payload


def parse_discord_embed(payload: dict[str, Any]) -> dict[str, Any]:
    """Recover device id, kind and bounds from a ``render_discord`` payload.

    Raises:
        ValueError: If the payload was not produced by ``render_discord``.
    """
    try:
        embed = payload["embeds"][0]
        footer = embed["footer"]["text"]
        fields = {f["name"]: f["value"] for f in embed["fields"]}
        bounds = fields["Bounds"]
    except (KeyError, IndexError, TypeError) as e:
        raise ValueError(f"Not a freezewatch Discord payload: {e}") from e

    if not footer.startswith(_KIND_FOOTER_PREFIX):
        raise ValueError(f"Unexpected footer {footer!r}")
    lower, _, upper = bounds.removesuffix(_BOUNDS_UNIT).partition(_BOUNDS_SEPARATOR)

    return {
        "device_id": embed["title"],
        "kind": footer[len(_KIND_FOOTER_PREFIX):],
        "lower_bound": float(lower),
        "upper_bound": float(upper),
    }


def render_webhook(event: AlertEvent) -> dict[str, Any]:
    """Generic JSON body: the full event plus human-readable title/message."""
    mail = render_email(event)
    return {
        "title": mail["subject"],
        "message": mail["text"],
        "event": event.to_dict(),
    }


def parse_webhook_payload(payload: dict[str, Any]) -> AlertEvent:
    """Rebuild the event carried by a ``render_webhook`` payload."""
    return AlertEvent.from_dict(payload["event"])
