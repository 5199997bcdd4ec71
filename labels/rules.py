"""Address classification used by the ledger views."""

from labels.known_entities import EXCHANGE_ADDRESSES
from labels.registry import LabelRegistry
from ledger.store import SINK_ADDRESSES


def classify_address(address: str, registry: LabelRegistry, exchanges: dict[str, str] = EXCHANGE_ADDRESSES) -> str:
    a = (address or "").lower()
    if a in SINK_ADDRESSES:
        return "sink"
    if a in exchanges:
        return "exchange"
    label = registry.get(a)
    if label is None:
        return "unlabeled"
    return "custodial" if label.custodial else "labeled"
