from __future__ import annotations

from functools import lru_cache
import threading

from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse

from prbox.api.schemas import CreatePrIn, CreatePrOut
from prbox.config import load_settings
from prbox.errors import ConfigurationError
from prbox.models.pr import CreatePrResult
from prbox.workflow import PrWorkflow

app = FastAPI(title="prbox")

# One configured sandbox: runs must not overlap in it.
_run_lock = threading.Lock()


@lru_cache(maxsize=1)
def get_workflow() -> PrWorkflow:
    return PrWorkflow(load_settings())


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError) -> JSONResponse:
    return JSONResponse(status_code=500, content=CreatePrResult.failed(str(exc)).to_dict())


@app.get("/health")
def health_check() -> dict:
    return {"status": "ok"}


@app.post("/pull-requests", response_model=CreatePrOut)
def create_pull_request(
    body: CreatePrIn, workflow: PrWorkflow = Depends(get_workflow)
) -> JSONResponse:
    with _run_lock:
        result = workflow.run(body.to_request())
    status_code = 200 if result.success else 502
    return JSONResponse(status_code=status_code, content=result.to_dict())
