"""Append-only transfer ledger.

Every ERC20 Transfer touches at most two records: an ``out`` leg under the
sender and an ``in`` leg under the receiver. Totals are exact ints and are
always recomputable from the transfer list. Ingestion is idempotent by tx hash
so overlapping re-scans are harmless.
"""

from dataclasses import dataclass, field
from typing import Any, Iterator

from pydantic import ValidationError

from ledger.schema import LedgerDocument

NULL_ADDRESS = "0x0000000000000000000000000000000000000000"
BURN_ADDRESS = "0x000000000000000000000000000000000000dead"
SINK_ADDRESSES = frozenset({NULL_ADDRESS, BURN_ADDRESS})

IN = "in"
OUT = "out"


class LedgerFormatError(ValueError):
    """Persisted ledger document is unreadable or inconsistent."""


def normalize_address(address: str | None) -> str:
    return (address or "").strip().lower()


def normalize_tx_hash(tx_hash: str | None) -> str:
    return (tx_hash or "").strip().lower()


@dataclass(frozen=True)
class Transfer:
    direction: str
    counterparty: str
    amount: int
    block_number: int
    tx_hash: str


@dataclass
class AddressRecord:
    total_in: int = 0
    total_out: int = 0
    transfers: list[Transfer] = field(default_factory=list)
    _seen: set[tuple[str, str]] = field(default_factory=set, repr=False, compare=False)

    @property
    def balance(self) -> int:
        return self.total_in - self.total_out

    def has_tx(self, direction: str, tx_hash: str) -> bool:
        return (direction, tx_hash) in self._seen

    def append(self, transfer: Transfer) -> None:
        if transfer.direction == IN:
            self.total_in += transfer.amount
        else:
            self.total_out += transfer.amount
        self.transfers.append(transfer)
        self._seen.add((transfer.direction, transfer.tx_hash))

    def legs(self, direction: str) -> list[Transfer]:
        return [t for t in self.transfers if t.direction == direction]


class Ledger:
    def __init__(self) -> None:
        self._records: dict[str, AddressRecord] = {}
        self._legs: dict[str, list[tuple[str, Transfer]]] = {}

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, address: object) -> bool:
        return isinstance(address, str) and normalize_address(address) in self._records

    def addresses(self) -> list[str]:
        return list(self._records)

    def items(self) -> Iterator[tuple[str, AddressRecord]]:
        return iter(self._records.items())

    def get_record(self, address: str) -> AddressRecord | None:
        return self._records.get(normalize_address(address))

    def legs(self, tx_hash: str) -> list[tuple[str, Transfer]]:
        """Every (address, transfer) recorded under ``tx_hash``."""
        return list(self._legs.get(normalize_tx_hash(tx_hash), ()))

    def max_block(self, default: int = -1) -> int:
        best = default
        for record in self._records.values():
            for t in record.transfers:
                if t.block_number > best:
                    best = t.block_number
        return best

    def tx_hashes(self) -> set[str]:
        return set(self._legs)

    def _record(self, address: str) -> AddressRecord:
        record = self._records.get(address)
        if record is None:
            record = AddressRecord()
            self._records[address] = record
        return record

    def _append(self, address: str, transfer: Transfer) -> None:
        self._record(address).append(transfer)
        self._legs.setdefault(transfer.tx_hash, []).append((address, transfer))

    def ingest_transfer(self, sender: str, receiver: str, amount: int, block_number: int, tx_hash: str) -> bool:
        """Record one transfer. Returns False when it was already recorded."""
        amount = int(amount)
        block_number = int(block_number)
        if amount <= 0:
            raise ValueError(f"transfer amount must be positive, got {amount}")
        if block_number < 0:
            raise ValueError(f"block number must be >= 0, got {block_number}")
        tx = normalize_tx_hash(tx_hash)
        if not tx:
            raise ValueError("transfer requires a transaction hash")

        src = normalize_address(sender) or NULL_ADDRESS
        dst = normalize_address(receiver) or NULL_ADDRESS

        src_rec = self._records.get(src)
        if src_rec is not None and src_rec.has_tx(OUT, tx):
            return False
        dst_rec = self._records.get(dst)
        if dst_rec is not None and dst_rec.has_tx(IN, tx):
            return False

        recorded = False
        if src != NULL_ADDRESS:
            self._append(src, Transfer(OUT, dst, amount, block_number, tx))
            recorded = True
        if dst != NULL_ADDRESS:
            self._append(dst, Transfer(IN, src, amount, block_number, tx))
            recorded = True
        return recorded

    def snapshot(self) -> dict[str, Any]:
        addresses = {}
        for address, record in self._records.items():
            transfers = []
            for t in record.transfers:
                transfers.append({
                    "type": t.direction,
                    "to" if t.direction == OUT else "from": t.counterparty,
                    "amount": str(t.amount),
                    "blockNumber": t.block_number,
                    "txHash": t.tx_hash,
                })
            addresses[address] = {
                "in": str(record.total_in),
                "out": str(record.total_out),
                "transfers": transfers,
            }
        return {"addresses": addresses}

    @classmethod
    def restore(cls, document: Any) -> "Ledger":
        try:
            parsed = LedgerDocument.model_validate(document)
        except ValidationError as e:
            raise LedgerFormatError(f"invalid ledger document: {e}") from e

        ledger = cls()
        for raw_address, entry in parsed.addresses.items():
            address = normalize_address(raw_address)
            if not address:
                raise LedgerFormatError("empty address key")
            if address in ledger._records:
                raise LedgerFormatError(f"{address}: duplicate address key")
            ledger._record(address)
            for t in entry.transfers:
                ledger._append(address, Transfer(
                    direction=t.type,
                    counterparty=normalize_address(t.counterparty),
                    amount=t.amount,
                    block_number=t.block_number,
                    tx_hash=normalize_tx_hash(t.tx_hash),
                ))
        return ledger
