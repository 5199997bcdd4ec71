from fastapi import APIRouter, HTTPException

from api.services.trace_service import trace_flows, trace_origin

router = APIRouter()


@router.get("/{address}/origin")
def origin(address: str, max_depth: int | None = None):
    data = trace_origin(address, max_depth=max_depth)
    if data is None:
        raise HTTPException(status_code=404, detail=f"address {address.lower()} not in ledger")
    return data


@router.get("/{address}/flows")
def flows(address: str):
    data = trace_flows(address)
    if data is None:
        raise HTTPException(status_code=404, detail=f"address {address.lower()} not in ledger")
    return data
