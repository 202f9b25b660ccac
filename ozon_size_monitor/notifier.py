"""Telegram notifier.

Formats change messages and fans them out to every registered chat via the
Bot API ``sendMessage`` method.  A failed delivery to one chat is recorded
and never stops delivery to the others.
"""
from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import requests

from . import db
from .attributes import SelectedAttribute, describe
from .config import HTTP_TIMEOUT_SECONDS, TELEGRAM_API_BASE, TELEGRAM_BOT_TOKEN
from .dimensions import FIELD_LABELS, CanonicalDimensions
from .utils import HTTPError, get_http_session, raise_for_status

logger = logging.getLogger(__name__)

_LABELS = {f: (label, unit) for f, label, unit in FIELD_LABELS}


@dataclass(frozen=True)
class DeliveryOutcome:
    recipient: str
    ok: bool
    error: Optional[str] = None


def send_message(
    session: requests.Session,
    chat_id: str,
    text: str,
    *,
    token: Optional[str] = None,
    api_base: str = TELEGRAM_API_BASE,
) -> None:
    """Send one HTML message. Raises on any failure; never retried."""
    token = token if token is not None else TELEGRAM_BOT_TOKEN
    url = f"{api_base.rstrip('/')}/bot{token}/sendMessage"
    payload = {
        "chat_id": chat_id,
        "text": text,
        "parse_mode": "HTML",
        "disable_web_page_preview": True,
    }
    resp = session.post(url, json=payload, timeout=HTTP_TIMEOUT_SECONDS)
    raise_for_status(resp)
    body = resp.json()
    if isinstance(body, dict) and body.get("ok") is False:
        raise HTTPError(body.get("description") or "Telegram rejected the message")


def notify_all(
    text: str,
    recipients: Optional[Sequence[str]] = None,
    session: Optional[requests.Session] = None,
    *,
    token: Optional[str] = None,
) -> List[DeliveryOutcome]:
    """Deliver text to every recipient independently. Never raises.

    If the recipient list itself cannot be read, a single failed outcome
    with an empty recipient is returned.
    """
    try:
        if recipients is None:
            recipients = db.list_recipients()
        if recipients and session is None:
            session = get_http_session()
            close_session = True
        else:
            close_session = False
    except Exception as e:
        logger.exception("Notification dropped: recipients unavailable")
        return [DeliveryOutcome("", False, str(e))]

    if not recipients:
        logger.info("No subscribed chats; notification dropped.")
        return []

    outcomes: List[DeliveryOutcome] = []
    try:
        for chat_id in recipients:
            try:
                send_message(session, chat_id, text, token=token)
            except Exception as e:
                # Stale or blocked chats are expected; keep going.
                logger.warning("Delivery to chat %s failed: %s", chat_id, e)
                outcomes.append(DeliveryOutcome(str(chat_id), False, str(e)))
            else:
                outcomes.append(DeliveryOutcome(str(chat_id), True))
    finally:
        if close_session:
            session.close()

    delivered = sum(1 for o in outcomes if o.ok)
    logger.info("Notification delivered to %d/%d chats", delivered, len(outcomes))
    return outcomes


# ---------------------------
# Message builders
# ---------------------------

def _fmt(v: Optional[float], unit: str) -> str:
    if v is None:
        return "—"
    num = int(v) if float(v).is_integer() else v
    return f"{num} {unit}"


def _header(title: str, offer_id: str, name: str) -> str:
    return (
        f"<b>{html.escape(title)}</b> — <code>{html.escape(offer_id)}</code>\n"
        f"{html.escape(name or offer_id)}"
    )


def dimension_change_message(
    offer_id: str,
    name: str,
    updated_at: str,
    old: CanonicalDimensions,
    new: CanonicalDimensions,
) -> str:
    lines = []
    for field, before, after in old.changes(new):
        label, unit = _LABELS[field]
        lines.append(f"• {label}: <code>{_fmt(before, unit)}</code> → <code>{_fmt(after, unit)}</code>")
    return (
        _header("Dimensions changed", offer_id, name)
        + f"\nUpdated: <code>{html.escape(updated_at or '')}</code>\n\n"
        + "\n".join(lines)
    )


def attribute_change_message(offer_id: str, name: str, attrs: Iterable[SelectedAttribute]) -> str:
    text = describe(attrs) or "—"
    return _header("Size attributes changed", offer_id, name) + f"\n\nNow: {html.escape(text)}"


def new_product_message(offer_id: str, name: str, dims: CanonicalDimensions) -> str:
    return (
        _header("New product", offer_id, name)
        + f"\nDimensions: D={_fmt(dims.depth_mm, 'mm')}, W={_fmt(dims.width_mm, 'mm')}, "
        + f"H={_fmt(dims.height_mm, 'mm')}, Weight={_fmt(dims.weight_g, 'g')}"
    )


def error_message(error: str) -> str:
    return f"⚠️ Monitoring error: <code>{html.escape(error)}</code>"


__all__ = [
    "DeliveryOutcome",
    "send_message",
    "notify_all",
    "dimension_change_message",
    "attribute_change_message",
    "new_product_message",
    "error_message",
]
