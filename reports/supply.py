import csv
from dataclasses import dataclass, field
from pathlib import Path

from labels.registry import Label, LabelRegistry
from ledger.store import BURN_ADDRESS, Ledger
from reports.formatting import format_amount, percentage


@dataclass
class Holder:
    address: str
    label: Label | None
    group: str | None
    balance: int

    @property
    def custodial(self) -> bool:
        return bool(self.label and self.label.custodial)


@dataclass
class LabelGroup:
    label: str | None
    total: int = 0
    holders: list[Holder] = field(default_factory=list)

    @property
    def locked(self) -> bool:
        return any(h.custodial for h in self.holders)


@dataclass
class SupplyReport:
    total_supply: int
    locked: int
    burned: int
    holders: list[Holder]
    groups: list[LabelGroup]

    @property
    def circulating(self) -> int:
        return self.total_supply - self.locked - self.burned

    @property
    def locked_holders(self) -> list[Holder]:
        return [h for h in self.holders if h.custodial]

    def to_dict(self, top: int = 100) -> dict:
        def holder(h: Holder) -> dict:
            return {
                "address": h.address,
                "label": h.label.name if h.label else None,
                "group": h.group,
                "balance": str(h.balance),
                "supply_pct": round(percentage(h.balance, self.total_supply), 6),
            }

        return {
            "total_supply": str(self.total_supply),
            "locked": str(self.locked),
            "burned": str(self.burned),
            "circulating": str(self.circulating),
            "circulating_pct": round(percentage(self.circulating, self.total_supply), 4),
            "locked_holders": [holder(h) for h in self.locked_holders],
            "groups": [
                {
                    "label": g.label,
                    "total": str(g.total),
                    "locked": g.locked,
                    "addresses": [h.address for h in g.holders],
                }
                for g in self.groups[:top]
            ],
            "top_holders": [holder(h) for h in self.holders[:top]],
        }


class LabelNormalizer:
    """Fold variant labels into their base label.

    "PAD - Spores disperse app locked 15k" becomes "PAD - Spores" when the
    latter is itself a label: the longest other label that prefixes the name
    and is followed by a space or a dash.
    """

    def __init__(self, names):
        cleaned = {n.strip() for n in names if n and n.strip()}
        self._bases = sorted(cleaned, key=len, reverse=True)

    def __call__(self, name: str | None) -> str | None:
        if not name:
            return name
        lowered = name.strip().lower()
        for base in self._bases:
            b = base.lower()
            if len(lowered) > len(b) and lowered.startswith(b) and lowered[len(b)] in (" ", "-"):
                return base
        return name


def circulating_supply(ledger: Ledger, registry: LabelRegistry, total_supply: int) -> SupplyReport:
    normalize = LabelNormalizer(lb.name for _, lb in registry.items())
    locked = 0
    burned = 0
    holders: list[Holder] = []
    groups: dict[str | None, LabelGroup] = {}

    for address, record in ledger.items():
        balance = record.balance
        if balance <= 0:
            continue
        if address == BURN_ADDRESS:
            burned += balance
            continue

        label = registry.get(address)
        group_name = normalize(label.name) if label else None
        h = Holder(address, label, group_name, balance)
        holders.append(h)

        group = groups.get(group_name)
        if group is None:
            group = groups[group_name] = LabelGroup(group_name)
        group.total += balance
        group.holders.append(h)

        if h.custodial:
            locked += balance

    holders.sort(key=lambda h: h.balance, reverse=True)
    ranked = sorted(groups.values(), key=lambda g: g.total, reverse=True)
    return SupplyReport(total_supply, locked, burned, holders, ranked)


def export_csv(report: SupplyReport, path: str | Path, decimals: int = 18, limit: int = 100) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    with out.open("w", encoding="utf-8", newline="") as fh:
        w = csv.writer(fh)
        w.writerow(["Label (normalized)", "Addresses", "Total Amount", "Supply %", "Locked"])
        for g in report.groups[:limit]:
            addresses = "; ".join(
                f"{h.address} ({h.label.name})" if h.label and h.label.name != g.label else h.address
                for h in g.holders
            )
            w.writerow([
                g.label or "No label",
                addresses,
                format_amount(g.total, decimals),
                f"{percentage(g.total, report.total_supply):.6f}",
                "Locked" if g.locked else "Not Locked",
            ])
    return out
