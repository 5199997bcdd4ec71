from fastapi import APIRouter

from api.services.label_service import get_labels
from labels.taxonomy import LABEL_TAXONOMY

router = APIRouter()


@router.get("/taxonomy")
def taxonomy():
    return {"labels": LABEL_TAXONOMY}


@router.get("")
def labels():
    data = get_labels()
    return {"total": len(data), "labels": data}
