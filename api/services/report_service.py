from api.services.data import get_settings, load_ledger, load_registry
from reports.sales import analyze_sales
from reports.supply import circulating_supply


def sales_report():
    settings = get_settings()
    report = analyze_sales(load_ledger(settings), load_registry(settings), max_depth=settings.trace_max_depth)
    return report.to_dict()


def supply_report(top: int = 100):
    settings = get_settings()
    report = circulating_supply(load_ledger(settings), load_registry(settings), settings.total_supply)
    return report.to_dict(top=top)
