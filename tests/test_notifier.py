import sqlite3

import requests

from conftest import FakeResponse, FakeSession
from ozon_size_monitor import db, notifier
from ozon_size_monitor.attributes import SelectedAttribute
from ozon_size_monitor.dimensions import CanonicalDimensions

SEND_PATH = "/botTEST/sendMessage"


def _telegram(fail_for=()):
    def handler(body):
        if str(body["chat_id"]) in fail_for:
            raise requests.ConnectionError("blocked")
        return {"ok": True, "result": {"message_id": 1}}

    return handler


def test_notify_all_delivers_to_every_recipient_despite_failures() -> None:
    session = FakeSession({SEND_PATH: _telegram(fail_for={"2"})})

    outcomes = notifier.notify_all("hello", ["1", "2", "3"], session, token="TEST")

    assert [(o.recipient, o.ok) for o in outcomes] == [("1", True), ("2", False), ("3", True)]
    assert "blocked" in outcomes[1].error
    assert len(session.calls) == 3
    assert session.calls[0][1]["parse_mode"] == "HTML"


def test_telegram_rejection_is_a_failed_delivery() -> None:
    session = FakeSession({
        SEND_PATH: lambda body: FakeResponse({"ok": False, "description": "Forbidden: bot was blocked"}, 403),
    })

    [outcome] = notifier.notify_all("hi", ["9"], session, token="TEST")

    assert not outcome.ok


def test_notify_all_reads_registered_recipients(temp_db) -> None:
    db.register_recipient(7)
    session = FakeSession({SEND_PATH: _telegram()})

    outcomes = notifier.notify_all("hi", session=session, token="TEST")

    assert [o.recipient for o in outcomes] == ["7"]


def test_unreadable_recipient_list_is_a_failed_outcome(monkeypatch) -> None:
    def locked():
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr(db, "list_recipients", locked)
    session = FakeSession({SEND_PATH: _telegram()})

    [outcome] = notifier.notify_all("hi", session=session, token="TEST")

    assert not outcome.ok
    assert "locked" in outcome.error
    assert session.calls == []


def test_notify_all_without_recipients_sends_nothing() -> None:
    session = FakeSession({SEND_PATH: _telegram()})

    assert notifier.notify_all("hi", [], session, token="TEST") == []
    assert session.calls == []


def test_dimension_message_lists_only_changed_fields() -> None:
    text = notifier.dimension_change_message(
        "A-1",
        "Mug <XL>",
        "2026-03-01",
        CanonicalDimensions(100, 50, 20, 300),
        CanonicalDimensions(120, 50, 20, 300),
    )

    assert "Depth: <code>100 mm</code> → <code>120 mm</code>" in text
    assert "Width" not in text and "Height" not in text and "Weight" not in text
    assert "Mug &lt;XL&gt;" in text


def test_dimension_message_shows_missing_values_as_dash() -> None:
    text = notifier.dimension_change_message(
        "A-1", "", "", CanonicalDimensions(weight_g=12.5), CanonicalDimensions()
    )

    assert "Weight: <code>12.5 g</code> → <code>—</code>" in text


def test_other_messages() -> None:
    attrs = [SelectedAttribute("Размер", 1, ("48", "50"))]

    assert "Размер: 48, 50" in notifier.attribute_change_message("A-1", "Coat", attrs)
    assert "D=100 mm" in notifier.new_product_message("A-1", "Mug", CanonicalDimensions(100, None, None, None))
    assert "&lt;timeout&gt;" in notifier.error_message("<timeout>")
