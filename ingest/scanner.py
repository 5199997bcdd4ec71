"""Resumable ERC20 Transfer scanner.

Features:
- resume point recovered from the highest block already in the ledger
- bounded block windows, tx-hash dedup seeded from the stored ledger
- failed windows are logged and skipped, never retried inside a pass
- persist-then-advance so a crash never loses acknowledged progress
- single pass or continuous mode
"""

import argparse
import logging
import sys
import time
from dataclasses import dataclass, field

import httpx

from ingest.rpc_source import EventSource, RpcError, RpcEventSource
from ledger.config import load_settings
from ledger.persistence import JsonLedgerStore
from ledger.store import LedgerFormatError

logger = logging.getLogger(__name__)


class ScannerStartupError(RuntimeError):
    pass


@dataclass
class ScanStats:
    windows: int = 0
    failed_windows: list[tuple[int, int]] = field(default_factory=list)
    new_transfers: int = 0
    duplicate_transfers: int = 0
    skipped_transfers: int = 0
    addresses: int = 0
    last_block: int = -1
    head_block: int = -1


class TransferScanner:
    def __init__(
        self,
        source: EventSource,
        store: JsonLedgerStore,
        start_block: int,
        batch_size: int = 1000,
        throttle_s: float = 0.1,
        sleep=time.sleep,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.source = source
        self.store = store
        self.start_block = start_block
        self.batch_size = batch_size
        self.throttle_s = throttle_s
        self._sleep = sleep

    def scan_once(self) -> ScanStats:
        try:
            network = self.source.connect()
        except Exception as e:
            raise ScannerStartupError(f"cannot connect to event source: {e}") from e
        logger.info("[scan] connected %s", network)

        ledger = self.store.load()
        seen = ledger.tx_hashes()
        last = ledger.max_block(default=self.start_block - 1)
        logger.info("[scan] %d addresses, %d known tx, resume after block %d", len(ledger), len(seen), last)

        head = self.source.head_block()
        stats = ScanStats(last_block=last, head_block=head)

        while last < head:
            start = last + 1
            end = min(last + self.batch_size, head)
            stats.windows += 1
            try:
                events = self.source.fetch_transfers(start, end)
            except Exception as e:
                logger.warning("[scan] window %d-%d failed, deferred to next run: %s", start, end, e)
                stats.failed_windows.append((start, end))
                last = end
                stats.last_block = end
                continue

            for ev in events:
                tx = ev.tx_hash.lower()
                if tx in seen:
                    stats.duplicate_transfers += 1
                    continue
                if ev.amount <= 0:
                    stats.skipped_transfers += 1
                    continue
                ledger.ingest_transfer(ev.sender, ev.receiver, ev.amount, ev.block_number, tx)
                seen.add(tx)
                stats.new_transfers += 1

            if events or end == head:
                self.store.save(ledger)
            logger.info("[scan] blocks %d-%d transfers=%d", start, end, len(events))

            last = end
            stats.last_block = end
            if last < head and self.throttle_s > 0:
                self._sleep(self.throttle_s)

        stats.addresses = len(ledger)
        logger.info(
            "[scan] done new=%d duplicates=%d failed_windows=%d addresses=%d",
            stats.new_transfers,
            stats.duplicate_transfers,
            len(stats.failed_windows),
            stats.addresses,
        )
        return stats

    def run_continuous(self, interval_s: float = 60.0, retry_delay_s: float = 60.0, max_passes: int | None = None) -> int:
        """Repeat scan_once; startup and ledger format errors stay fatal."""
        passes = 0
        while max_passes is None or passes < max_passes:
            passes += 1
            started = time.monotonic()
            try:
                self.scan_once()
            except (ScannerStartupError, LedgerFormatError):
                raise
            except Exception as e:
                logger.error("[scan] pass failed, retrying in %ss: %s", retry_delay_s, e)
                delay = retry_delay_s
            else:
                logger.info("[scan] pass took %.2fs, next in %ss", time.monotonic() - started, interval_s)
                delay = interval_s
            if max_passes is None or passes < max_passes:
                self._sleep(delay)
        return passes


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Scan ERC20 Transfer events into the ledger snapshot")
    parser.add_argument("-c", "--continuous", action="store_true", help="keep scanning every SCAN_INTERVAL_S seconds")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    settings = load_settings()
    logger.info("[scan] token=%s start_block=%d", settings.token_address, settings.start_block)

    with httpx.Client() as client:
        source = RpcEventSource(client, settings.rpc_urls, settings.token_address)
        scanner = TransferScanner(
            source,
            JsonLedgerStore(settings.data_file),
            start_block=settings.start_block,
            batch_size=settings.batch_size,
            throttle_s=settings.scan_throttle_s,
        )
        try:
            if args.continuous:
                scanner.run_continuous(settings.scan_interval_s, settings.scan_retry_delay_s)
            else:
                scanner.scan_once()
        except (ScannerStartupError, LedgerFormatError, RpcError, OSError) as e:
            logger.error("[scan] fatal: %s", e)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
