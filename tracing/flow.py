"""Amount-conserving flow tracing.

A transfer is followed leg by leg through unlabeled addresses until a labeled
counterparty is reached. The followed amount only ever shrinks: each hop
carries ``min(leg amount, amount received upstream)``. Forward traces follow
the receiver's later OUT legs, backward traces the sender's earlier IN legs.

Traversal uses an explicit stack in post-order. Continuations are shared
between branches through a memo, so work stays bounded by the number of
transfers times ``max_depth`` on highly connected graphs.
"""

from dataclasses import dataclass, field, replace
from typing import Hashable, Mapping, TypeVar

from labels.registry import Label, LabelRegistry
from ledger.store import IN, OUT, Ledger, Transfer, normalize_address
from tracing.provenance import DEFAULT_MAX_DEPTH

K = TypeVar("K", bound=Hashable)


@dataclass(frozen=True)
class Attribution:
    label: Label
    amount: int
    tx_hash: str
    address: str


def _keep(best: dict[Label, Attribution], a: Attribution) -> None:
    seen = best.get(a.label)
    if seen is None or a.amount > seen.amount:
        best[a.label] = a


@dataclass
class DirectionFlows:
    total: int = 0
    by_label: dict[Label, int] = field(default_factory=dict)

    @property
    def attributed(self) -> int:
        return sum(self.by_label.values())

    @property
    def untraced(self) -> int:
        return self.total - self.attributed

    def to_dict(self) -> dict:
        rows = sorted(self.by_label.items(), key=lambda kv: kv[1], reverse=True)
        return {
            "total": str(self.total),
            "attributed": str(self.attributed),
            "untraced": str(self.untraced),
            "labels": [
                {"label": lb.name, "custodial": lb.custodial, "amount": str(amount)}
                for lb, amount in rows
            ],
        }


@dataclass
class AddressFlows:
    address: str
    inbound: DirectionFlows
    outbound: DirectionFlows

    def to_dict(self) -> dict:
        return {
            "address": self.address,
            "in": self.inbound.to_dict(),
            "out": self.outbound.to_dict(),
        }


def conserve(amounts: Mapping[K, int], total: int) -> dict[K, int]:
    """Scale ``amounts`` down so their sum never exceeds ``total``.

    Shares are floored and the leftover units go to the largest fractional
    remainders (first seen wins ties), so an overstated sum lands exactly on
    ``total``. Sums already within ``total`` are returned unchanged.
    """
    current = sum(amounts.values())
    if current <= total or current <= 0:
        return dict(amounts)

    scaled: dict[K, int] = {}
    remainders = []
    for i, (key, amount) in enumerate(amounts.items()):
        share, rem = divmod(amount * total, current)
        scaled[key] = share
        remainders.append((rem, i, key))

    leftover = total - sum(scaled.values())
    for _, _, key in sorted(remainders, key=lambda r: (-r[0], r[1]))[:leftover]:
        scaled[key] += 1
    return scaled


class FlowTracer:
    """Traces over one ledger snapshot; build a new tracer after ingesting."""

    def __init__(self, ledger: Ledger, registry: LabelRegistry, max_depth: int = DEFAULT_MAX_DEPTH):
        self.ledger = ledger
        self.registry = registry
        self.max_depth = max_depth
        self._memo: dict[tuple[Transfer, int], dict[Label, Attribution]] = {}

    def _next_legs(self, address: str, after: Transfer, forward: bool) -> list[Transfer]:
        record = self.ledger.get_record(address)
        if record is None:
            return []
        if forward:
            legs = [t for t in record.legs(OUT) if t.amount > 0 and t.block_number >= after.block_number]
            legs.sort(key=lambda t: t.block_number)
        else:
            legs = [t for t in record.legs(IN) if t.amount > 0 and t.block_number <= after.block_number]
            legs.sort(key=lambda t: t.block_number, reverse=True)
        return legs

    def _hops(self, t: Transfer) -> list[tuple[str, int, Label | None]]:
        counterpart_direction = IN if t.direction == OUT else OUT
        return [
            (addr, min(leg.amount, t.amount), self.registry.get(addr))
            for addr, leg in self.ledger.legs(t.tx_hash)
            if addr == t.counterparty and leg.direction == counterpart_direction
        ]

    def _reach(self, root: Transfer) -> dict[Label, Attribution]:
        """Labels reachable through ``root``, each with its best bottleneck amount.

        Results are memoised per ``(transfer, depth)`` so converging and
        ping-pong paths are expanded once. Depth grows on every hop, which keeps
        the memo graph acyclic. A path that revisits a tx never carries more
        than the same path with the loop cut out, so no visited set is needed
        for the result to match a per-branch visited walk.
        """
        forward = root.direction == OUT
        memo = self._memo
        stack = [(root, 0, False)]

        while stack:
            t, depth, ready = stack.pop()
            if (t, depth) in memo:
                continue
            hops = self._hops(t)
            expand = depth < self.max_depth

            if not ready:
                stack.append((t, depth, True))
                if expand:
                    for addr, _, label in hops:
                        if label is None:
                            for nxt in self._next_legs(addr, t, forward):
                                if (nxt, depth + 1) not in memo:
                                    stack.append((nxt, depth + 1, False))
                continue

            best: dict[Label, Attribution] = {}
            for addr, received, label in hops:
                if label is not None:
                    # custodial labels are terminal like any other label; never crossed
                    _keep(best, Attribution(label, received, t.tx_hash, addr))
                elif expand:
                    for nxt in self._next_legs(addr, t, forward):
                        for a in memo[(nxt, depth + 1)].values():
                            _keep(best, replace(a, amount=min(a.amount, received)))
            memo[(t, depth)] = best

        return memo[(root, 0)]

    def trace(self, address: str, transfer: Transfer, available: int | None = None) -> list[Attribution]:
        """Labels reached from one of ``address``'s transfers, max amount per label."""
        cap = transfer.amount if available is None else min(available, transfer.amount)
        if cap <= 0:
            return []
        result = []
        for a in self._reach(transfer).values():
            amount = min(a.amount, cap)
            if amount > 0:
                result.append(replace(a, amount=amount))
        return result

    def _direction_flows(self, address: str, transfers: list[Transfer], total: int) -> DirectionFlows:
        per_origin: dict[tuple[Label, str], int] = {}
        for t in transfers:
            if t.amount <= 0:
                continue
            for a in self.trace(address, t):
                key = (a.label, t.tx_hash)
                if a.amount > per_origin.get(key, 0):
                    per_origin[key] = a.amount

        by_label: dict[Label, int] = {}
        for (label, _), amount in per_origin.items():
            by_label[label] = by_label.get(label, 0) + amount
        return DirectionFlows(total=total, by_label=conserve(by_label, total))

    def address_flows(self, address: str) -> AddressFlows:
        addr = normalize_address(address)
        record = self.ledger.get_record(addr)
        if record is None or not record.transfers:
            return AddressFlows(addr, DirectionFlows(), DirectionFlows())
        return AddressFlows(
            address=addr,
            inbound=self._direction_flows(addr, record.legs(IN), record.total_in),
            outbound=self._direction_flows(addr, record.legs(OUT), record.total_out),
        )
