from api.services.data import get_settings, load_ledger, load_registry
from labels.registry import LabelRegistry
from labels.rules import classify_address
from ledger.store import OUT, AddressRecord


def _transfer_rows(record: AddressRecord) -> list[dict]:
    rows = []
    for t in record.transfers:
        rows.append({
            "type": t.direction,
            "to" if t.direction == OUT else "from": t.counterparty,
            "amount": str(t.amount),
            "block_number": t.block_number,
            "tx_hash": t.tx_hash,
        })
    return rows


def _address_row(address: str, record: AddressRecord, registry: LabelRegistry) -> dict:
    label = registry.get(address)
    return {
        "address": address,
        "in": str(record.total_in),
        "out": str(record.total_out),
        "balance": str(record.balance),
        "label": label.name if label else None,
        "kind": classify_address(address, registry),
        "transfers": _transfer_rows(record),
    }


def get_ledger_view():
    settings = get_settings()
    ledger = load_ledger(settings)
    registry = load_registry(settings)
    addresses = [_address_row(a, rec, registry) for a, rec in ledger.items()]
    return {
        "addresses": addresses,
        "total": len(addresses),
        "token_price_usd": settings.token_price_usd,
    }


def get_address_view(address: str):
    addr = address.lower()
    ledger = load_ledger()
    record = ledger.get_record(addr)
    if record is None:
        return None
    return _address_row(addr, record, load_registry())
