"""Sales attribution: transfers into known exchanges rolled up per seller label.

Each OUT transfer into a destination address is counted once (by tx hash) and
traced back to the nearest non-custodial label. Volume that cannot be traced
stays in the report as ``unresolved``.
"""

from dataclasses import dataclass, field

from labels.known_entities import EXCHANGE_ADDRESSES
from labels.registry import Label, LabelRegistry
from ledger.store import OUT, Ledger
from tracing.provenance import DEFAULT_MAX_DEPTH, Origin, resolve_origin


@dataclass
class CategoryTotals:
    amounts: dict[str, int] = field(default_factory=dict)
    counts: dict[str, int] = field(default_factory=dict)

    @classmethod
    def empty(cls, categories) -> "CategoryTotals":
        return cls({c: 0 for c in categories}, {c: 0 for c in categories})

    def add(self, category: str, amount: int) -> None:
        self.amounts[category] = self.amounts.get(category, 0) + amount
        self.counts[category] = self.counts.get(category, 0) + 1

    @property
    def total(self) -> int:
        return sum(self.amounts.values())

    @property
    def count(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> dict:
        return {
            "sales": {c: str(v) for c, v in self.amounts.items()},
            "transaction_count": dict(self.counts),
            "total_amount": str(self.total),
        }


@dataclass
class SalesRow:
    label: Label
    address: str
    totals: CategoryTotals

    @property
    def total(self) -> int:
        return self.totals.total

    def to_dict(self) -> dict:
        return {"label": self.label.name, "address": self.address, **self.totals.to_dict()}


@dataclass
class SalesReport:
    rows: list[SalesRow]
    unresolved: CategoryTotals
    transfers_seen: int = 0
    transfers_attributed: int = 0

    @property
    def attributed_total(self) -> int:
        return sum(r.total for r in self.rows)

    def to_dict(self) -> dict:
        return {
            "transfers_seen": self.transfers_seen,
            "transfers_attributed": self.transfers_attributed,
            "attributed_total": str(self.attributed_total),
            "unresolved": self.unresolved.to_dict(),
            "rows": [r.to_dict() for r in self.rows],
        }


def analyze_sales(
    ledger: Ledger,
    registry: LabelRegistry,
    destinations: dict[str, str] = EXCHANGE_ADDRESSES,
    max_depth: int = DEFAULT_MAX_DEPTH,
) -> SalesReport:
    dest = {a.lower(): c for a, c in destinations.items()}
    categories = list(dict.fromkeys(dest.values()))

    unresolved = CategoryTotals.empty(categories)
    rows: dict[str, SalesRow] = {}
    origins: dict[str, Origin | None] = {}
    seen_tx: set[str] = set()
    transfers_seen = 0
    attributed = 0

    for address, record in ledger.items():
        for t in record.legs(OUT):
            category = dest.get(t.counterparty)
            if category is None or t.tx_hash in seen_tx:
                continue
            seen_tx.add(t.tx_hash)
            transfers_seen += 1

            if address not in origins:
                origins[address] = resolve_origin(ledger, registry, address, max_depth=max_depth, exclude=dest)
            origin = origins[address]
            if origin is None:
                unresolved.add(category, t.amount)
                continue

            row = rows.get(origin.address)
            if row is None:
                row = SalesRow(origin.label, origin.address, CategoryTotals.empty(categories))
                rows[origin.address] = row
            row.totals.add(category, t.amount)
            attributed += 1

    # sorted() is stable: equal totals keep first-seen order
    ranked = sorted(rows.values(), key=lambda r: r.total, reverse=True)
    return SalesReport(ranked, unresolved, transfers_seen, attributed)
