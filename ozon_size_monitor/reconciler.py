"""Baseline reconciliation.

One scan lists the catalog, splits it into batches, and for every offer in a
batch compares freshly fetched dimensions (and size attributes) against the
stored baseline.  Changes are announced through the notifier; the new state
of the whole batch is then written in one transaction.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields
from typing import Callable, List, Mapping, Optional, Sequence

from . import db, notifier, ozon
from .attributes import select_size_attributes
from .config import (NOTIFY_ON_NEW_PRODUCT, PAGE_SIZE, SCAN_CONCURRENCY,
                     SIZE_ATTRIBUTE_PATTERNS, SIZE_TRACKING_MODE,
                     TRACK_OFFER_IDS, TrackingMode)
from .db import ProductBaseline
from .dimensions import resolve_dimensions
from .fingerprint import attribute_fingerprint, dimension_fingerprint
from .ozon import OfferRef

logger = logging.getLogger(__name__)

Dispatch = Callable[[str], object]


@dataclass(frozen=True)
class Notification:
    kind: str  # "new", "dimensions" or "attributes"
    text: str


@dataclass
class OfferDecision:
    baseline: ProductBaseline
    notifications: List[Notification] = field(default_factory=list)
    is_new: bool = False
    fast_path: bool = False


@dataclass
class BatchResult:
    offers: int = 0
    reconciled: int = 0
    skipped: int = 0
    new: int = 0
    fast_path: int = 0
    dimension_changes: int = 0
    attribute_changes: int = 0

    def add(self, other: "BatchResult") -> None:
        for f in fields(BatchResult):
            setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))


@dataclass
class ScanSummary(BatchResult):
    batches: int = 0


def _product_id(info: Mapping, ref: OfferRef) -> int:
    raw = info.get("id") or info.get("product_id") or ref.product_id or 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def reconcile_offer(
    ref: OfferRef,
    info: Mapping,
    attributes_item: Optional[Mapping],
    prior: Optional[ProductBaseline],
    *,
    mode: TrackingMode,
    patterns: Sequence[str],
    notify_new: bool,
    now: str,
) -> OfferDecision:
    """Decide the new baseline for one offer and which notifications it causes.

    ``attributes_item`` is only consulted in attribute-aware modes; pass an
    empty mapping when the attributes call succeeded but returned nothing
    for this offer.
    """
    offer_id = ref.offer_id
    name = str(info.get("name") or "")
    updated_at = str(info.get("updated_at") or info.get("updatedAt") or "")

    # Unchanged server-side modification time: trust it and skip the work.
    if (
        prior is not None
        and mode is TrackingMode.DIMENSIONS
        and prior.source_updated_at
        and updated_at
        and prior.source_updated_at == updated_at
    ):
        return OfferDecision(prior.touched(now), fast_path=True)

    attrs_source = attributes_item if mode.tracks_attributes else None
    dims, source = resolve_dimensions(info, attrs_source)
    dim_hash = dimension_fingerprint(dims)
    logger.debug("Offer %s: dimensions from %s", offer_id, source or "nowhere")

    if prior is None:
        notes = []
        if notify_new:
            notes.append(Notification("new", notifier.new_product_message(offer_id, name, dims)))
        baseline = ProductBaseline(
            offer_id=offer_id,
            product_id=_product_id(info, ref),
            name=name,
            source_updated_at=updated_at,
            dimensions=dims,
            dim_hash=dim_hash,
            attr_hash=None,
            last_seen_at=now,
        )
        return OfferDecision(baseline, notes, is_new=True)

    notes = []
    attr_hash = prior.attr_hash
    if mode.tracks_attributes:
        picked = select_size_attributes(attrs_source, patterns)
        attr_hash = attribute_fingerprint(picked)
        if prior.attr_hash and prior.attr_hash != attr_hash:
            notes.append(Notification(
                "attributes", notifier.attribute_change_message(offer_id, name, picked)
            ))

    if mode.tracks_dimensions and prior.dim_hash and prior.dim_hash != dim_hash:
        # A hash written by an older serialisation can differ with equal values.
        if prior.dimensions.changes(dims):
            notes.insert(0, Notification(
                "dimensions",
                notifier.dimension_change_message(offer_id, name, updated_at, prior.dimensions, dims),
            ))

    baseline = ProductBaseline(
        offer_id=offer_id,
        product_id=_product_id(info, ref),
        name=name,
        source_updated_at=updated_at,
        dimensions=dims,
        dim_hash=dim_hash,
        attr_hash=attr_hash,
        last_seen_at=now,
    )
    return OfferDecision(baseline, notes)


def process_batch(
    refs: Sequence[OfferRef],
    *,
    mode: TrackingMode = SIZE_TRACKING_MODE,
    patterns: Sequence[str] = SIZE_ATTRIBUTE_PATTERNS,
    notify_new: bool = NOTIFY_ON_NEW_PRODUCT,
    dispatch: Optional[Dispatch] = None,
) -> BatchResult:
    """Fetch, compare, notify and persist one batch of offers.

    Offers that could not be fetched are left untouched for this scan.  All
    staged baselines are committed together at the end.
    """
    if dispatch is None:
        dispatch = notifier.notify_all

    result = BatchResult(offers=len(refs))
    ids = [r.offer_id for r in refs]
    payload = ozon.fetch_batch(ids, with_attributes=mode.tracks_attributes)
    unavailable = payload.failed_attribute_offers
    priors = db.get_baselines(ids)
    now = db.utcnow()

    staged: List[ProductBaseline] = []
    for ref in refs:
        info = payload.info_by_offer.get(ref.offer_id)
        if info is None or ref.offer_id in unavailable:
            result.skipped += 1
            continue

        attrs_item = payload.attrs_by_offer.get(ref.offer_id, {}) if mode.tracks_attributes else None
        decision = reconcile_offer(
            ref,
            info,
            attrs_item,
            priors.get(ref.offer_id),
            mode=mode,
            patterns=patterns,
            notify_new=notify_new,
            now=now,
        )
        for note in decision.notifications:
            logger.info("Offer %s: %s notification", ref.offer_id, note.kind)
            dispatch(note.text)
            if note.kind == "dimensions":
                result.dimension_changes += 1
            elif note.kind == "attributes":
                result.attribute_changes += 1

        result.reconciled += 1
        result.new += int(decision.is_new)
        result.fast_path += int(decision.fast_path)
        staged.append(decision.baseline)

    db.upsert_baselines(staged)
    logger.info(
        "Batch done: %d offers, %d reconciled (%d new, %d unchanged-fast), %d skipped, %d failed chunks",
        result.offers, result.reconciled, result.new, result.fast_path, result.skipped,
        len(payload.failed_chunks),
    )
    return result


def run_scan(
    *,
    allow_list: Sequence[str] = TRACK_OFFER_IDS,
    page_size: int = PAGE_SIZE,
    concurrency: int = SCAN_CONCURRENCY,
    mode: TrackingMode = SIZE_TRACKING_MODE,
    patterns: Sequence[str] = SIZE_ATTRIBUTE_PATTERNS,
    notify_new: bool = NOTIFY_ON_NEW_PRODUCT,
    dispatch: Optional[Dispatch] = None,
) -> ScanSummary:
    """One full sweep over the catalog.

    Batches of ``page_size`` offers are handed to a pool of ``concurrency``
    workers as the listing is paged through.  A listing error drops the
    batches still queued and is raised once the running ones finish; a batch
    error is raised after every submitted batch has finished.
    """
    logger.info("Scan started (mode=%s, allow-list=%d)", mode.value, len(allow_list))
    summary = ScanSummary()
    session = ozon.get_api_session()
    try:
        with ThreadPoolExecutor(max_workers=concurrency, thread_name_prefix="batch") as pool:
            futures = []
            batch: List[OfferRef] = []

            def submit(refs: List[OfferRef]) -> None:
                futures.append(pool.submit(
                    process_batch, refs,
                    mode=mode, patterns=patterns, notify_new=notify_new, dispatch=dispatch,
                ))

            listed = 0
            try:
                for ref in ozon.iter_offers(session, allow_list=allow_list, page_size=page_size):
                    listed += 1
                    batch.append(ref)
                    if len(batch) >= page_size:
                        submit(batch)
                        batch = []
            except Exception:
                # Queued batches are dropped; running ones finish.
                pool.shutdown(wait=True, cancel_futures=True)
                raise
            if batch:
                submit(batch)
            logger.info("Offers loaded: %d in %d batches", listed, len(futures))

            summary.batches = len(futures)
            for fut in futures:
                summary.add(fut.result())
    finally:
        session.close()

    logger.info(
        "Scan finished: %d offers, %d dimension changes, %d attribute changes, %d skipped",
        summary.offers, summary.dimension_changes, summary.attribute_changes, summary.skipped,
    )
    return summary


__all__ = [
    "Notification",
    "OfferDecision",
    "BatchResult",
    "ScanSummary",
    "reconcile_offer",
    "process_batch",
    "run_scan",
]
