from datetime import date, datetime, timedelta

from fastapi.testclient import TestClient

import adjourn.main as main
from adjourn.auth import get_websocket_owner
from adjourn.database import get_session
from tests.utils import TEST_OWNER, FakeEntryStore, override_owner, override_session


def open_client(monkeypatch, store: FakeEntryStore) -> TestClient:
    monkeypatch.setattr(main, "AUTOSAVE_QUIET_PERIOD", 0.01)
    monkeypatch.setattr(main, "EntryService", lambda session: store)
    main.app.dependency_overrides[get_websocket_owner] = override_owner
    main.app.dependency_overrides[get_session] = override_session
    return TestClient(main.app)


def test_live_edit_creates_then_updates(monkeypatch):
    store = FakeEntryStore()
    client = open_client(monkeypatch, store)
    try:
        with client.websocket_connect("/v1/entries/2024-01-10/live") as ws:
            loaded = ws.receive_json()
            assert loaded == {"type": "loaded", "content": "", "status": "draft"}

            ws.send_json({"type": "change", "content": "Dear diary"})
            assert ws.receive_json()["status"] == "unsaved"
            saved = ws.receive_json()
            assert saved["status"] == "saved"
            assert saved["label"].startswith("Saved ")
            entry_id = saved["entry_id"]

            ws.send_json({"type": "change", "content": "Dear diary, hello"})
            assert ws.receive_json()["status"] == "unsaved"
            assert ws.receive_json()["entry_id"] == entry_id
    finally:
        main.app.dependency_overrides.clear()

    assert [call[0] for call in store.writes] == ["create", "update"]
    assert store.writes[0][1] == date(2024, 1, 10)


def test_live_edit_loads_existing_and_flushes(monkeypatch):
    store = FakeEntryStore()
    entry = store.seed(TEST_OWNER, date(2024, 1, 10), "morning")
    client = open_client(monkeypatch, store)
    try:
        with client.websocket_connect("/v1/entries/2024-01-10/live") as ws:
            assert ws.receive_json()["content"] == "morning"

            ws.send_json({"type": "flush"})
            assert ws.receive_json()["status"] == "draft"

            ws.send_json({"type": "bogus"})
            assert ws.receive_json()["type"] == "error"
    finally:
        main.app.dependency_overrides.clear()

    assert store.writes == []
    assert entry["content"] == "morning"


def test_live_edit_reports_failed_save(monkeypatch):
    store = FakeEntryStore()
    store.fail_next = 1
    client = open_client(monkeypatch, store)
    try:
        with client.websocket_connect("/v1/entries/2024-01-10/live") as ws:
            ws.receive_json()
            ws.send_json({"type": "change", "content": "unlucky"})
            assert ws.receive_json()["status"] == "unsaved"
            assert ws.receive_json() == {
                "type": "error",
                "detail": "Save failed; changes are kept",
            }
    finally:
        main.app.dependency_overrides.clear()


def test_live_edit_saved_label_uses_local_time(monkeypatch):
    store = FakeEntryStore()
    monkeypatch.setattr(main, "ADJOURN_TIMEZONE", "Asia/Tokyo")
    assert main.local_now().utcoffset() == timedelta(hours=9)

    monkeypatch.setattr(main, "local_now", lambda: datetime(2024, 1, 10, 23, 45, 1))
    client = open_client(monkeypatch, store)
    try:
        with client.websocket_connect("/v1/entries/2024-01-10/live") as ws:
            ws.receive_json()
            ws.send_json({"type": "change", "content": "late night"})
            ws.receive_json()
            assert ws.receive_json()["label"] == "Saved 23:45:01"
    finally:
        main.app.dependency_overrides.clear()
