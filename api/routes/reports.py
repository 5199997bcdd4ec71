from fastapi import APIRouter

from api.services.report_service import sales_report, supply_report

router = APIRouter()


@router.get("/sales")
def sales():
    return sales_report()


@router.get("/supply")
def supply(top: int = 100):
    return supply_report(top=min(top, 500))
