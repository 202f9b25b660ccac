from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Tuple
from urllib.parse import urlparse

import pytest
import requests

from ozon_size_monitor import db


class FakeResponse:
    def __init__(self, data: Any = None, status_code: int = 200, headers: Optional[dict] = None) -> None:
        self._data = data
        self.status_code = status_code
        self.headers = headers or {}

    def json(self) -> Any:
        if isinstance(self._data, Exception):
            raise self._data
        return self._data

    def raise_for_status(self) -> None:
        if self.status_code >= 400:
            raise requests.HTTPError(f"{self.status_code} Error", response=self)


Handler = Callable[[Any], Any]


class FakeSession:
    """Routes POST/GET calls by URL path to plain handler functions.

    A handler receives the JSON body (POST) or params (GET) and returns the
    decoded payload, a FakeResponse, or raises.
    """

    def __init__(self, routes: Optional[Dict[str, Handler]] = None) -> None:
        self.routes: Dict[str, Handler] = dict(routes or {})
        self.calls: List[Tuple[str, Any]] = []
        self.closed = False

    def _dispatch(self, url: str, payload: Any) -> FakeResponse:
        path = urlparse(url).path
        self.calls.append((path, payload))
        handler = self.routes.get(path)
        if handler is None:
            return FakeResponse({"message": "not found"}, 404)
        out = handler(payload)
        return out if isinstance(out, FakeResponse) else FakeResponse(out)

    def post(self, url: str, json: Any = None, **kwargs: Any) -> FakeResponse:
        return self._dispatch(url, json)

    def get(self, url: str, params: Any = None, **kwargs: Any) -> FakeResponse:
        return self._dispatch(url, params)

    def close(self) -> None:
        self.closed = True

    def paths(self) -> List[str]:
        return [p for p, _ in self.calls]


@pytest.fixture
def temp_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_PATH", str(tmp_path / "monitor.db"))
    db.init_db()
    return tmp_path / "monitor.db"


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


def stored(offer_id: str):
    """Baseline currently persisted for one offer, or None."""
    return db.get_baselines([offer_id]).get(offer_id)
