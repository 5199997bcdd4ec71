"""Backward label resolution.

Breadth-first over inbound edges, most recent block first (tx hash descending
on ties). The first non-custodial label dequeued wins; a custodial label ends
the whole search with no attribution.
"""

from collections import deque
from dataclasses import dataclass
from typing import Iterable

from labels.registry import Label, LabelRegistry
from ledger.store import IN, SINK_ADDRESSES, Ledger, normalize_address

DEFAULT_MAX_DEPTH = 50


@dataclass(frozen=True)
class Origin:
    address: str
    label: Label
    depth: int = 0


def resolve_origin(
    ledger: Ledger,
    registry: LabelRegistry,
    address: str,
    max_depth: int = DEFAULT_MAX_DEPTH,
    exclude: Iterable[str] = (),
) -> Origin | None:
    """Nearest labeled ancestor of ``address`` or None.

    ``exclude`` addresses are walked through as if unlabeled.
    """
    start = normalize_address(address)
    record = ledger.get_record(start)
    if record is None or not record.transfers:
        return None

    excluded = {normalize_address(a) for a in exclude}
    queue = deque([(start, 0)])
    visited = {start}

    while queue:
        current, depth = queue.popleft()
        label = None if current in excluded else registry.get(current)
        if label is not None:
            if label.custodial:
                return None
            return Origin(address=current, label=label, depth=depth)

        if depth >= max_depth:
            continue
        rec = ledger.get_record(current)
        if rec is None:
            continue
        inbound = sorted(rec.legs(IN), key=lambda t: (t.block_number, t.tx_hash), reverse=True)
        for t in inbound:
            src = t.counterparty
            if src in SINK_ADDRESSES or src in visited:
                continue
            visited.add(src)
            queue.append((src, depth + 1))

    return None
