from fastapi import APIRouter, HTTPException

from api.services.ledger_service import get_address_view, get_ledger_view

router = APIRouter()


@router.get("")
def ledger():
    return get_ledger_view()


@router.get("/{address}")
def address_record(address: str):
    data = get_address_view(address)
    if data is None:
        raise HTTPException(status_code=404, detail=f"address {address.lower()} not in ledger")
    return data
