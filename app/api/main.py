from __future__ import annotations

import logging

from fastapi import FastAPI

from app.api.routes.growth import router as growth_router
from app.services.growth_service import init_evaluator

log = logging.getLogger(__name__)

app = FastAPI(title="WHO Child Growth Evaluator API", version="0.1.0")

app.include_router(growth_router)


@app.on_event("startup")
def _startup() -> None:
    """Load config and WHO reference; a bad reference aborts startup."""
    init_evaluator()
    log.info("Growth API started")


@app.get("/health")
def health():
    return {"status": "ok"}
