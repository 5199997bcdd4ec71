import json

import httpx
import pytest

from ingest.rpc_source import TRANSFER_TOPIC, RpcError, RpcEventSource, is_range_error, parse_transfer_log

TOKEN = "0x970a341b4e311a5c7248dc9c3d8d4f35fedfa73e"


def topic(addr: str) -> str:
    return "0x" + "0" * 24 + addr[2:].rjust(40, "0")


def log(sender, receiver, amount, block, tx, index=0):
    return {
        "address": TOKEN,
        "topics": [TRANSFER_TOPIC, topic(sender), topic(receiver)],
        "data": hex(amount),
        "blockNumber": hex(block),
        "transactionHash": tx,
        "logIndex": hex(index),
    }


LOGS = [
    log("0x" + "a" * 40, "0x" + "b" * 40, 10**18, 5, "0xAA", 1),
    log("0x" + "b" * 40, "0x" + "c" * 40, 7, 3, "0xBB", 0),
    log("0x" + "c" * 40, "0x" + "a" * 40, 2**255, 5, "0xCC", 0),
]


def make_source(handler, urls=("http://rpc-1",), **kw):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RpcEventSource(client, list(urls), TOKEN, sleep=lambda s: None, **kw)


def in_range(params):
    f = params[0]
    lo, hi = int(f["fromBlock"], 16), int(f["toBlock"], 16)
    return [lg for lg in LOGS if lo <= int(lg["blockNumber"], 16) <= hi], lo, hi


def test_parse_transfer_log_decodes_topics_and_amount():
    ev = parse_transfer_log(LOGS[0])
    assert ev.sender == "0x" + "a" * 40
    assert ev.receiver == "0x" + "b" * 40
    assert ev.amount == 10**18
    assert (ev.block_number, ev.tx_hash, ev.log_index) == (5, "0xaa", 1)
    assert parse_transfer_log({"topics": [TRANSFER_TOPIC]}) is None


def test_fetch_transfers_filters_token_and_orders_by_block():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        seen.append(body)
        logs, _, _ = in_range(body["params"])
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": logs})

    events = make_source(handler).fetch_transfers(0, 10)

    assert [e.tx_hash for e in events] == ["0xbb", "0xcc", "0xaa"]
    assert events[1].amount == 2**255
    f = seen[0]["params"][0]
    assert f["address"] == TOKEN and f["topics"] == [TRANSFER_TOPIC]


def test_fetch_transfers_splits_rejected_ranges():
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        logs, lo, hi = in_range(body["params"])
        if hi - lo + 1 > 2:
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32005, "message": "range too large"}})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": logs})

    events = make_source(handler).fetch_transfers(0, 7)
    assert sorted(e.tx_hash for e in events) == ["0xaa", "0xbb", "0xcc"]


def test_fetch_transfers_raises_when_smallest_range_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    with pytest.raises(RpcError):
        make_source(handler).fetch_transfers(0, 3)


def test_falls_back_to_next_provider():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "rpc-1":
            return httpx.Response(502)
        body = json.loads(request.content)
        if body["method"] == "eth_chainId":
            return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x1"})
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "result": "0x1b4"})

    source = make_source(handler, urls=("http://rpc-1", "http://rpc-2"))
    assert source.connect() == {"chain_id": 1}
    assert source.head_block() == 436


def test_transport_failure_fails_the_window_without_splitting():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.host)
        return httpx.Response(503)

    source = make_source(handler, urls=("http://rpc-1", "http://rpc-2"))
    with pytest.raises(RpcError):
        source.fetch_transfers(0, 999)
    assert calls == ["rpc-1", "rpc-2"]


def test_unrelated_rpc_error_is_not_split():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32000, "message": "header not found"}})

    with pytest.raises(RpcError):
        make_source(handler).fetch_transfers(0, 999)
    assert len(calls) == 1


def test_range_error_detection():
    assert is_range_error({"code": -32005, "message": "limit exceeded"})
    assert is_range_error({"code": -32602, "message": "eth_getLogs block range is too large, max 500"})
    assert is_range_error({"code": -32000, "message": "query returned more than 10000 results"})
    assert not is_range_error({"code": -32000, "message": "header not found"})
    assert not is_range_error(None)
