#!/usr/bin/env python3
"""Rank labeled sellers by volume sent into known exchanges."""

import argparse
import json
import logging

from api.services.data import get_settings, load_ledger, load_registry
from reports.formatting import format_amount, format_usd
from reports.sales import analyze_sales


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--json", action="store_true", help="print the report as JSON")
    parser.add_argument("--top", type=int, default=10)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    settings = get_settings()
    report = analyze_sales(load_ledger(settings), load_registry(settings), max_depth=settings.trace_max_depth)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
        return

    def fmt(raw: int) -> str:
        return f"{format_amount(raw, settings.token_decimals)} tokens ({format_usd(raw, settings.token_price_usd, settings.token_decimals)})"

    print(f"transfers into exchanges: {report.transfers_seen} (attributed {report.transfers_attributed})")
    print(f"attributed volume: {fmt(report.attributed_total)}")
    print(f"unresolved volume: {fmt(report.unresolved.total)} in {report.unresolved.count} transfer(s)")
    for category, amount in report.unresolved.amounts.items():
        print(f"  {category}: {fmt(amount)}")
    print()

    if not report.rows:
        print("no labeled sales found")
        return

    for rank, row in enumerate(report.rows[: args.top], start=1):
        print(f"{rank}. {row.label.name}  {row.address}")
        print(f"   total: {fmt(row.total)}")
        for category, amount in row.totals.amounts.items():
            print(f"   {category}: {fmt(amount)} - {row.totals.counts[category]} transaction(s)")


if __name__ == "__main__":
    main()
