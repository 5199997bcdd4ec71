import json

import pytest

from ingest.rpc_source import RpcError, TransferEvent
from ingest.scanner import ScannerStartupError, TransferScanner
from ledger.persistence import JsonLedgerStore
from ledger.store import LedgerFormatError


class FakeSource:
    def __init__(self, events, head, fail=(), connect_error=None, head_errors=0):
        self.events = list(events)
        self.head = head
        self.fail = set(fail)
        self.connect_error = connect_error
        self.head_errors = head_errors
        self.calls = []

    def connect(self):
        if self.connect_error:
            raise self.connect_error
        return {"chain_id": 1}

    def head_block(self):
        if self.head_errors:
            self.head_errors -= 1
            raise RpcError("head unavailable")
        return self.head

    def fetch_transfers(self, from_block, to_block):
        self.calls.append((from_block, to_block))
        if (from_block, to_block) in self.fail:
            raise RpcError("getLogs timeout")
        return [ev for ev in self.events if from_block <= ev.block_number <= to_block]


def ev(sender, receiver, amount, block, tx):
    return TransferEvent(sender, receiver, amount, block, tx)


EVENTS = [
    ev("0xa", "0xb", 100, 101, "0x01"),
    ev("0xb", "0xc", 40, 112, "0x02"),
    ev("0xc", "0xd", 10, 121, "0x03"),
]


def make_scanner(tmp_path, source, sleeps=None, **kw):
    store = JsonLedgerStore(tmp_path / "transfers.json")
    sleep = (sleeps.append if sleeps is not None else (lambda s: None))
    kw.setdefault("batch_size", 10)
    kw.setdefault("throttle_s", 0)
    return TransferScanner(source, store, start_block=100, sleep=sleep, **kw), store


def test_single_pass_walks_bounded_windows_and_persists(tmp_path):
    source = FakeSource(EVENTS, head=125)
    scanner, store = make_scanner(tmp_path, source)

    stats = scanner.scan_once()

    assert source.calls == [(100, 109), (110, 119), (120, 125)]
    assert stats.new_transfers == 3
    assert stats.last_block == 125
    assert stats.addresses == 4
    ledger = store.load()
    assert ledger.get_record("0xb").balance == 60


def test_rescan_resumes_from_last_seen_block_and_dedups(tmp_path):
    scanner, store = make_scanner(tmp_path, FakeSource(EVENTS, head=125))
    scanner.scan_once()
    before = store.load().snapshot()

    source = FakeSource(EVENTS + [ev("0xd", "0xe", 1, 130, "0x04")], head=135)
    scanner2, _ = make_scanner(tmp_path, source)
    stats = scanner2.scan_once()

    # last stored transfer was at block 121
    assert source.calls[0] == (122, 131)
    assert stats.new_transfers == 1
    after = store.load().snapshot()
    for addr in before["addresses"]:
        if addr != "0xd":
            assert after["addresses"][addr] == before["addresses"][addr]


def test_known_tx_seen_again_is_not_double_counted(tmp_path):
    scanner, store = make_scanner(tmp_path, FakeSource(EVENTS, head=125))
    scanner.scan_once()
    before = store.load().snapshot()

    # tx 0x03 reported again in a later window
    replay = FakeSource([ev("0xc", "0xd", 10, 126, "0x03")], head=130)
    again, _ = make_scanner(tmp_path, replay)
    stats = again.scan_once()

    assert stats.duplicate_transfers == 1
    assert stats.new_transfers == 0
    assert store.load().snapshot() == before


def test_failed_window_is_skipped_not_fatal(tmp_path):
    source = FakeSource(EVENTS, head=125, fail={(110, 119)})
    scanner, store = make_scanner(tmp_path, source)

    stats = scanner.scan_once()

    assert stats.failed_windows == [(110, 119)]
    assert source.calls == [(100, 109), (110, 119), (120, 125)]
    ledger = store.load()
    assert ledger.legs("0x02") == []
    assert ledger.get_record("0xd").total_in == 10


def test_connect_failure_is_fatal_and_touches_nothing(tmp_path):
    source = FakeSource(EVENTS, head=125, connect_error=RpcError("no route"))
    scanner, store = make_scanner(tmp_path, source)

    with pytest.raises(ScannerStartupError):
        scanner.scan_once()
    assert source.calls == []
    assert not store.path.exists()


def test_duplicate_tx_in_batch_and_zero_amount_are_skipped(tmp_path):
    events = [
        ev("0xa", "0xb", 5, 100, "0x01"),
        ev("0xa", "0xc", 5, 100, "0x01"),
        ev("0xa", "0xb", 0, 101, "0x02"),
    ]
    scanner, store = make_scanner(tmp_path, FakeSource(events, head=101))
    stats = scanner.scan_once()

    assert (stats.new_transfers, stats.duplicate_transfers, stats.skipped_transfers) == (1, 1, 1)
    assert "0xc" not in store.load()


def test_throttles_between_windows(tmp_path):
    sleeps = []
    scanner, _ = make_scanner(tmp_path, FakeSource(EVENTS, head=125), sleeps=sleeps, throttle_s=0.1)
    scanner.scan_once()
    assert sleeps == [0.1, 0.1]


def test_up_to_date_ledger_fetches_nothing(tmp_path):
    scanner, store = make_scanner(tmp_path, FakeSource(EVENTS, head=125))
    scanner.scan_once()
    source = FakeSource(EVENTS, head=121)
    again, _ = make_scanner(tmp_path, source)
    stats = again.scan_once()
    assert source.calls == []
    assert stats.windows == 0


def test_continuous_mode_sleeps_interval_and_retry_delay(tmp_path):
    sleeps = []
    source = FakeSource(EVENTS, head=125, head_errors=1)
    scanner, store = make_scanner(tmp_path, source, sleeps=sleeps)

    passes = scanner.run_continuous(interval_s=60, retry_delay_s=30, max_passes=3)

    assert passes == 3
    assert sleeps == [30, 60]
    assert store.load().get_record("0xa").total_out == 100


def test_continuous_mode_keeps_startup_failure_fatal(tmp_path):
    scanner, _ = make_scanner(tmp_path, FakeSource(EVENTS, head=125, connect_error=RpcError("down")))
    with pytest.raises(ScannerStartupError):
        scanner.run_continuous(max_passes=5)


def test_corrupt_ledger_stops_the_scan(tmp_path):
    (tmp_path / "transfers.json").write_text("[]", encoding="utf-8")
    scanner, _ = make_scanner(tmp_path, FakeSource(EVENTS, head=125))
    with pytest.raises(LedgerFormatError):
        scanner.scan_once()


def test_rejects_zero_batch_size(tmp_path):
    with pytest.raises(ValueError):
        TransferScanner(FakeSource([], head=0), JsonLedgerStore(tmp_path / "x.json"), start_block=0, batch_size=0)


def test_non_ascii_digit_amount_stops_the_scan_cleanly(tmp_path):
    doc = {"addresses": {"0xa": {"in": "²", "out": "0", "transfers": []}}}
    (tmp_path / "transfers.json").write_text(json.dumps(doc), encoding="utf-8")
    scanner, _ = make_scanner(tmp_path, FakeSource(EVENTS, head=125))
    with pytest.raises(LedgerFormatError):
        scanner.scan_once()
