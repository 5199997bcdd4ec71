#!/usr/bin/env python3
"""Circulating supply: total supply minus custodial-locked and burned balances."""

import argparse
import logging

from api.services.data import get_settings, load_ledger, load_registry
from reports.formatting import format_amount, percentage
from reports.supply import circulating_supply, export_csv


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--export", nargs="?", const="holders-export.csv", default=None, help="write label groups to CSV")
    parser.add_argument("--top", type=int, default=50)
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.WARNING)
    settings = get_settings()
    report = circulating_supply(load_ledger(settings), load_registry(settings), settings.total_supply)

    def fmt(raw: int) -> str:
        return format_amount(raw, settings.token_decimals)

    total = report.total_supply
    print(f"total supply: {fmt(total)}")
    print(f"locked:       {fmt(report.locked)} ({percentage(report.locked, total):.2f}%)")
    print(f"burned:       {fmt(report.burned)} ({percentage(report.burned, total):.2f}%)")
    print(f"circulating:  {fmt(report.circulating)} ({percentage(report.circulating, total):.2f}%)")
    print()

    for i, h in enumerate(report.locked_holders, start=1):
        print(f"locked {i}. {h.label.name}  {h.address}  {fmt(h.balance)}")
    if report.locked_holders:
        print()

    for i, g in enumerate(report.groups[: args.top], start=1):
        print(f"{i:>3}. {g.label or 'No label'}  {fmt(g.total)} ({percentage(g.total, total):.4f}%)  addresses={len(g.holders)}")
    print(f"\ngroups={len(report.groups)} holders={len(report.holders)}")

    if args.export:
        path = export_csv(report, args.export, decimals=settings.token_decimals)
        print(f"exported {min(len(report.groups), 100)} groups to {path}")


if __name__ == "__main__":
    main()
