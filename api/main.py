
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routes.labels import router as labels_router
from api.routes.ledger import router as ledger_router
from api.routes.reports import router as reports_router
from api.routes.trace import router as trace_router
from api.services.data import assert_ledger_readable
from labels.registry import LabelFormatError
from ledger.store import LedgerFormatError

app = FastAPI(title="tokentrace API", version="0.1.0")


@app.on_event("startup")
def _ledger_guard():
    assert_ledger_readable()


@app.exception_handler(LedgerFormatError)
@app.exception_handler(LabelFormatError)
def _format_error(request: Request, exc: ValueError):
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.get("/health")
def health():
    return {"ok": True, "service": "tokentrace"}


app.include_router(ledger_router, prefix="/ledger", tags=["ledger"])
app.include_router(labels_router, prefix="/labels", tags=["labels"])
app.include_router(trace_router, prefix="/trace", tags=["trace"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])
