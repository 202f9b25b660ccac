from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

import requests

from .config import (
    FALLBACK_CHUNK_SIZE,
    HTTP_TIMEOUT_SECONDS,
    LOG_API,
    LOG_REQ_BODY,
    LOG_RES_BODY,
    OZON_API_BASE,
    OZON_API_KEY,
    OZON_CLIENT_ID,
    PAGE_SIZE,
)
from .utils import (HTTPError, chunked, get_http_session, redact,
                    retryable_request, truncate)

logger = logging.getLogger(__name__)
api_logger = logging.getLogger(__package__ + ".api")

LIST_PATH = "/v3/product/list"
INFO_LIST_PATH = "/v3/product/info/list"
INFO_FALLBACK_PATH = "/v2/product/info"
ATTRIBUTES_PATH = "/v4/product/info/attributes"


class FetchError(Exception):
    """A seller API call failed: transport error, bad status or malformed payload."""


@dataclass(frozen=True)
class OfferRef:
    offer_id: str
    product_id: Optional[int] = None


@dataclass(frozen=True)
class ChunkOutcome:
    """Result of one endpoint call made on behalf of a batch."""

    endpoint: str
    offer_ids: tuple
    ok: bool
    records: int = 0
    error: Optional[str] = None


@dataclass
class BatchPayload:
    info_by_offer: Dict[str, dict] = field(default_factory=dict)
    attrs_by_offer: Dict[str, dict] = field(default_factory=dict)
    outcomes: List[ChunkOutcome] = field(default_factory=list)

    @property
    def failed_attribute_offers(self) -> set:
        out: set = set()
        for o in self.outcomes:
            if o.endpoint == ATTRIBUTES_PATH and not o.ok:
                out.update(o.offer_ids)
        return out

    @property
    def failed_chunks(self) -> List[ChunkOutcome]:
        return [o for o in self.outcomes if not o.ok]


def get_api_session() -> requests.Session:
    """Session carrying the seller credentials."""
    return get_http_session({"Client-Id": OZON_CLIENT_ID, "Api-Key": OZON_API_KEY})


@retryable_request
def _post(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.post(url, **kwargs)


def api_post(
    session: requests.Session,
    path: str,
    body: dict,
    *,
    base_url: str = OZON_API_BASE,
    timeout: float = HTTP_TIMEOUT_SECONDS,
) -> dict:
    """POST a JSON body to the seller API and return the decoded JSON object.

    Every call is logged on the ``.api`` logger with status, duration and
    rate-limit headers.  All failures are raised as FetchError.
    """
    url = f"{base_url.rstrip('/')}{path}"
    started = time.monotonic()
    try:
        resp = _post(session, url, json=body, timeout=timeout)
        data = resp.json()
    except (requests.RequestException, HTTPError, ValueError) as e:
        ms = int((time.monotonic() - started) * 1000)
        if LOG_API:
            api_logger.warning("POST %s failed after %dms: %s", path, ms, e)
            if LOG_REQ_BODY:
                api_logger.debug("POST %s request=%s", path, truncate(redact(body)))
        raise FetchError(f"POST {path} failed: {e}") from e

    ms = int((time.monotonic() - started) * 1000)
    if LOG_API:
        headers = getattr(resp, "headers", None) or {}
        api_logger.info(
            "POST %s -> %s in %dms (ratelimit limit=%s remaining=%s reset=%s)",
            path,
            resp.status_code,
            ms,
            headers.get("x-ratelimit-limit"),
            headers.get("x-ratelimit-remaining"),
            headers.get("x-ratelimit-reset"),
        )
        if LOG_REQ_BODY:
            api_logger.debug("POST %s request=%s", path, truncate(redact(body)))
        if LOG_RES_BODY:
            api_logger.debug("POST %s response=%s", path, truncate(redact(data)))

    if not isinstance(data, dict):
        raise FetchError(f"POST {path} returned {type(data).__name__}, expected an object")
    return data


def _as_list(value: Any, path: str) -> List[dict]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise FetchError(f"POST {path} returned malformed items ({type(value).__name__})")
    return [v for v in value if isinstance(v, dict)]


def offer_key(item: dict) -> Optional[str]:
    v = item.get("offer_id") or item.get("offerId")
    return str(v) if v else None


# ---------------------------
# Catalog pagination
# ---------------------------

def iter_offers(
    session: requests.Session,
    *,
    allow_list: Sequence[str] = (),
    page_size: int = PAGE_SIZE,
) -> Iterator[OfferRef]:
    """Yield every offer in the catalog, one listing page at a time.

    Pages are requested with the opaque ``last_id`` cursor, starting empty.
    Stops on an empty page or a missing next cursor.  With an allow-list
    exactly one page is requested.  A new generator must be created for
    every scan.
    """
    last_id = ""
    while True:
        body: Dict[str, Any] = {"limit": page_size, "last_id": last_id, "filter": {"visibility": "ALL"}}
        if allow_list:
            body["filter"]["offer_id"] = list(allow_list)
        data = api_post(session, LIST_PATH, body)

        result = data.get("result")
        if isinstance(result, dict):
            raw_items = result.get("items")
        elif isinstance(result, list):
            raw_items = result
        else:
            raw_items = data.get("items")
        items = _as_list(raw_items, LIST_PATH)
        if not items:
            break

        logger.debug("Listing page: %d items (cursor=%r)", len(items), last_id)
        for it in items:
            oid = it.get("offer_id")
            if oid:
                yield OfferRef(offer_id=str(oid), product_id=it.get("product_id"))

        cursor = result.get("last_id") if isinstance(result, dict) else None
        last_id = cursor or data.get("last_id") or ""
        if not last_id or allow_list:
            break


# ---------------------------
# Bulk detail endpoints
# ---------------------------

def fetch_info_list(session: requests.Session, offer_ids: Sequence[str]) -> List[dict]:
    if not offer_ids:
        return []
    data = api_post(session, INFO_LIST_PATH, {"offer_id": list(offer_ids)})
    return _as_list(data.get("items"), INFO_LIST_PATH)


def fetch_info_fallback(session: requests.Session, offer_ids: Sequence[str]) -> List[dict]:
    if not offer_ids:
        return []
    data = api_post(session, INFO_FALLBACK_PATH, {"offer_id": list(offer_ids)})
    return _as_list(data.get("items") or data.get("result"), INFO_FALLBACK_PATH)


def fetch_attributes(session: requests.Session, offer_ids: Sequence[str]) -> List[dict]:
    if not offer_ids:
        return []
    body = {
        "filter": {
            "product_id": [],
            "offer_id": list(offer_ids),
            "sku": [],
            "visibility": "ALL",
        },
        "limit": 1000,
        "sort_dir": "ASC",
    }
    data = api_post(session, ATTRIBUTES_PATH, body)
    return _as_list(data.get("result"), ATTRIBUTES_PATH)


def fetch_batch(
    offer_ids: Sequence[str],
    *,
    with_attributes: bool = False,
    chunk_size: int = FALLBACK_CHUNK_SIZE,
    session: Optional[requests.Session] = None,
) -> BatchPayload:
    """Fetch info (and optionally attributes) for one batch of offers.

    The bulk info endpoint is tried once for the whole batch.  If it fails
    the batch is split into ``chunk_size`` sub-chunks sent to the fallback
    endpoint; a failing sub-chunk is recorded and skipped.  Attributes are
    fetched per sub-chunk with the same isolation.  Nothing is retried
    beyond this single alternate path.
    """
    close_session = False
    if session is None:
        session = get_api_session()
        close_session = True

    payload = BatchPayload()
    ids = list(offer_ids)
    try:
        try:
            items = fetch_info_list(session, ids)
            payload.outcomes.append(ChunkOutcome(INFO_LIST_PATH, tuple(ids), True, len(items)))
        except FetchError as e:
            logger.warning("Bulk info failed for %d offers, falling back in chunks of %d: %s", len(ids), chunk_size, e)
            payload.outcomes.append(ChunkOutcome(INFO_LIST_PATH, tuple(ids), False, error=str(e)))
            items = []
            for sub in chunked(ids, chunk_size):
                try:
                    got = fetch_info_fallback(session, sub)
                except FetchError as sub_err:
                    logger.warning("Fallback info chunk of %d offers skipped: %s", len(sub), sub_err)
                    payload.outcomes.append(ChunkOutcome(INFO_FALLBACK_PATH, tuple(sub), False, error=str(sub_err)))
                    continue
                payload.outcomes.append(ChunkOutcome(INFO_FALLBACK_PATH, tuple(sub), True, len(got)))
                items.extend(got)

        for it in items:
            key = offer_key(it)
            if key:
                payload.info_by_offer[key] = it

        if with_attributes:
            for sub in chunked(ids, chunk_size):
                try:
                    got = fetch_attributes(session, sub)
                except FetchError as sub_err:
                    logger.warning("Attribute chunk of %d offers skipped: %s", len(sub), sub_err)
                    payload.outcomes.append(ChunkOutcome(ATTRIBUTES_PATH, tuple(sub), False, error=str(sub_err)))
                    continue
                payload.outcomes.append(ChunkOutcome(ATTRIBUTES_PATH, tuple(sub), True, len(got)))
                for it in got:
                    key = offer_key(it)
                    if key:
                        payload.attrs_by_offer[key] = it
    finally:
        if close_session:
            session.close()
    return payload


__all__ = [
    "FetchError",
    "OfferRef",
    "ChunkOutcome",
    "BatchPayload",
    "get_api_session",
    "api_post",
    "iter_offers",
    "fetch_info_list",
    "fetch_info_fallback",
    "fetch_attributes",
    "fetch_batch",
    "offer_key",
]
