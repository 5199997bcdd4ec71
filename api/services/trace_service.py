from api.services.data import get_settings, load_ledger, load_registry
from labels.known_entities import EXCHANGE_ADDRESSES
from tracing.flow import FlowTracer
from tracing.provenance import resolve_origin


def trace_origin(address: str, max_depth: int | None = None):
    settings = get_settings()
    ledger = load_ledger(settings)
    if ledger.get_record(address) is None:
        return None
    origin = resolve_origin(
        ledger,
        load_registry(settings),
        address,
        max_depth=max_depth if max_depth is not None else settings.trace_max_depth,
        exclude=EXCHANGE_ADDRESSES,
    )
    if origin is None:
        return {"address": address.lower(), "resolved": False, "origin": None}
    return {
        "address": address.lower(),
        "resolved": True,
        "origin": {"address": origin.address, "label": origin.label.name, "depth": origin.depth},
    }


def trace_flows(address: str):
    settings = get_settings()
    ledger = load_ledger(settings)
    if ledger.get_record(address) is None:
        return None
    tracer = FlowTracer(ledger, load_registry(settings), max_depth=settings.trace_max_depth)
    return tracer.address_flows(address).to_dict()
