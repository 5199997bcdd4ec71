"""ERC20 Transfer event source over Ethereum JSON-RPC.

Features:
- primary RPC plus comma separated fallbacks
- adaptive eth_getLogs range splitting when a provider rejects a window as too large
- logs filtered to one token contract, returned in (block, log index) order
"""

import logging
import time
from dataclasses import dataclass
from typing import Protocol

import httpx

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"

logger = logging.getLogger(__name__)


class RpcError(RuntimeError):
    def __init__(self, message: str, rpc_error: dict | None = None):
        super().__init__(message)
        self.rpc_error = rpc_error


# eth_getLogs limits differ per provider; these cover the usual wordings
RANGE_ERROR_CODES = frozenset({-32005})
RANGE_ERROR_HINTS = ("block range", "range too", "too many", "too large", "limit exceeded", "query returned more than")


def is_range_error(rpc_error: dict | None) -> bool:
    """True when a JSON-RPC error says the eth_getLogs window was too big."""
    if not isinstance(rpc_error, dict):
        return False
    if rpc_error.get("code") in RANGE_ERROR_CODES:
        return True
    message = str(rpc_error.get("message") or "").lower()
    return any(hint in message for hint in RANGE_ERROR_HINTS)


@dataclass(frozen=True)
class TransferEvent:
    sender: str
    receiver: str
    amount: int
    block_number: int
    tx_hash: str
    log_index: int = 0


class EventSource(Protocol):
    def connect(self) -> dict: ...

    def head_block(self) -> int: ...

    def fetch_transfers(self, from_block: int, to_block: int) -> list[TransferEvent]: ...


def h2i(x):
    if x is None:
        return 0
    if isinstance(x, int):
        return x
    return int(x, 16)


def rpc_call(client: httpx.Client, rpc_urls: list[str], method: str, params: list, retries: int = 3, sleep=time.sleep):
    last_err = None
    range_error = None
    for rpc_url in rpc_urls:
        for attempt in range(retries):
            try:
                payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
                r = client.post(rpc_url, json=payload, timeout=30)
                r.raise_for_status()
                data = r.json()
                if "error" in data:
                    raise RpcError(f"RPC {method} error: {data['error']}", rpc_error=data["error"])
                return data.get("result"), rpc_url, attempt
            except (httpx.HTTPError, ValueError, RpcError) as e:
                last_err = e
                if isinstance(e, RpcError) and is_range_error(e.rpc_error):
                    range_error = e.rpc_error
                if attempt + 1 < retries:
                    sleep(min(5, 0.6 * (2**attempt)))
    raise RpcError(f"RPC {method} failed across providers: {last_err}", rpc_error=range_error)


def parse_transfer_log(lg: dict) -> TransferEvent | None:
    topics = lg.get("topics") or []
    if len(topics) < 3:
        return None
    return TransferEvent(
        sender=("0x" + topics[1][-40:]).lower(),
        receiver=("0x" + topics[2][-40:]).lower(),
        amount=h2i(lg.get("data") or "0x0"),
        block_number=h2i(lg.get("blockNumber", "0x0")),
        tx_hash=(lg.get("transactionHash") or "").lower(),
        log_index=h2i(lg.get("logIndex", "0x0")),
    )


class RpcEventSource:
    def __init__(
        self,
        client: httpx.Client,
        rpc_urls: list[str],
        token_address: str,
        retries: int = 3,
        min_chunk: int = 1,
        sleep=time.sleep,
    ):
        self.client = client
        self.rpc_urls = rpc_urls
        self.token_address = token_address.lower()
        self.retries = retries
        self.min_chunk = min_chunk
        self._sleep = sleep

    def _call(self, method: str, params: list, retries: int | None = None):
        result, _, _ = rpc_call(
            self.client,
            self.rpc_urls,
            method,
            params,
            retries=self.retries if retries is None else retries,
            sleep=self._sleep,
        )
        return result

    def connect(self) -> dict:
        chain_id = h2i(self._call("eth_chainId", []))
        logger.info("[rpc] connected chain_id=%s via %s", chain_id, self.rpc_urls[0])
        return {"chain_id": chain_id}

    def head_block(self) -> int:
        return h2i(self._call("eth_blockNumber", []))

    def _get_logs(self, start: int, end: int) -> list:
        # one attempt per provider; the scanner owns window-level failure handling
        result = self._call(
            "eth_getLogs",
            [{
                "address": self.token_address,
                "fromBlock": hex(start),
                "toBlock": hex(end),
                "topics": [TRANSFER_TOPIC],
            }],
            retries=1,
        )
        return result or []

    def fetch_transfers(self, from_block: int, to_block: int) -> list[TransferEvent]:
        """Adaptive range chunking for eth_getLogs."""
        events: list[TransferEvent] = []
        stack = [(from_block, to_block)]

        while stack:
            s, e = stack.pop()
            if s > e:
                continue
            try:
                logs = self._get_logs(s, e)
            except RpcError as err:
                # transport failures and other RPC errors fail the window as is
                if not is_range_error(err.rpc_error) or (e - s + 1) <= self.min_chunk:
                    raise
                mid = (s + e) // 2
                stack.append((mid + 1, e))
                stack.append((s, mid))
                logger.debug("[rpc] split logs window %s-%s", s, e)
                continue
            for lg in logs:
                ev = parse_transfer_log(lg)
                if ev is not None and ev.tx_hash:
                    events.append(ev)

        events.sort(key=lambda ev: (ev.block_number, ev.log_index))
        return events
