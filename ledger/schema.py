"""Pydantic models for the persisted ledger document.

Amounts are stored as decimal integer strings so values beyond 2**53 survive
any JSON tooling. Totals in a record must match its transfer list.
"""

from typing import Annotated, Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, PlainValidator, StrictInt, model_validator


def _amount(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("amount must be a decimal integer string")
    if isinstance(value, int):
        amount = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        amount = int(value)
    else:
        raise ValueError(f"amount must be a decimal integer string, got {value!r}")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    return amount


Amount = Annotated[int, PlainValidator(_amount)]


class TransferEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: Literal["in", "out"]
    to: Optional[str] = None
    from_: Optional[str] = Field(default=None, alias="from")
    amount: Amount
    block_number: StrictInt = Field(alias="blockNumber", ge=0)
    tx_hash: str = Field(alias="txHash")

    @model_validator(mode="after")
    def _check_legs(self) -> "TransferEntry":
        if not self.tx_hash.strip():
            raise ValueError("txHash must not be empty")
        if not (self.to if self.type == "out" else self.from_):
            raise ValueError(f"{self.type} transfer is missing its counterparty")
        return self

    @property
    def counterparty(self) -> str:
        return (self.to if self.type == "out" else self.from_) or ""


class AddressEntry(BaseModel):
    model_config = ConfigDict(extra="ignore")

    in_: Amount = Field(default=0, alias="in")
    out: Amount = 0
    transfers: list[TransferEntry] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_totals(self) -> "AddressEntry":
        seen = set()
        totals = {"in": 0, "out": 0}
        for t in self.transfers:
            key = (t.type, t.tx_hash.strip().lower())
            if key in seen:
                raise ValueError(f"duplicate {t.type} transfer {key[1]}")
            seen.add(key)
            totals[t.type] += t.amount
        if totals["in"] != self.in_ or totals["out"] != self.out:
            raise ValueError(
                f"stored totals in={self.in_} out={self.out} "
                f"do not match transfers in={totals['in']} out={totals['out']}"
            )
        return self


class LedgerDocument(BaseModel):
    model_config = ConfigDict(extra="ignore")

    addresses: dict[str, AddressEntry] = Field(default_factory=dict)
