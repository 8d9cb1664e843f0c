"""
FastAPI server for the oracle dashboard.

This provides REST API endpoints for:
- Current engine status and predictor leaderboard
- Forcing a fresh prediction batch
- Manually reporting an actual outcome

Usage:
    uvicorn color_oracle.api.server:create_app --factory --port 8787
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, Field

from ..forecasting.engine import InvalidActualError
from ..forecasting.status import build_status
from ..service import OracleService, build_service

logger = logging.getLogger(__name__)

BASE_DIR = Path(__file__).parent.parent.parent


# Pydantic models
class ResultEntryModel(BaseModel):
    period_id: str
    outcome_number: int
    color: Optional[str] = None


class CategoryModel(BaseModel):
    color: str
    size: str


class ForecastModel(BaseModel):
    predictor_id: int
    color: str
    size: str
    source: str


class PendingBatchModel(BaseModel):
    batch_id: int
    generated_at: str
    for_period_after: Optional[str] = None
    predictions: List[ForecastModel]
    compared_at: Optional[str] = None


class ReconciliationModel(BaseModel):
    batch_id: int
    period_id: Optional[str] = None
    outcome_number: int
    actual: CategoryModel
    wins: int
    judged: int
    compared_at: str


class PredictorSummary(BaseModel):
    id: int
    name: str
    wins: int
    losses: int
    accuracy: float
    recent_outcomes: List[int]
    last_prediction: Optional[CategoryModel] = None
    last_judgement: Optional[bool] = None
    key_present: bool = False


class FeedHealthModel(BaseModel):
    status: str
    last_success_at: Optional[str] = None
    last_failure_at: Optional[str] = None
    consecutive_failures: int
    last_error: Optional[str] = None
    entries_last_fetch: int


class StatusResponse(BaseModel):
    period_marker: Optional[str] = None
    engine_state: str
    cached_snapshot: List[ResultEntryModel]
    pending_batch: Optional[PendingBatchModel] = None
    last_reconciliation: Optional[ReconciliationModel] = None
    predictors: List[PredictorSummary]
    feed: Optional[FeedHealthModel] = None
    updated_at: Optional[str] = None
    server_timestamp: str


class PredictResponse(BaseModel):
    success: bool
    batch: Optional[PendingBatchModel] = None
    snapshot: List[ResultEntryModel]


class ReportActualRequest(BaseModel):
    actual: Any = Field(default=None, description="Outcome digit 0-9")
    period_id: Optional[str] = Field(default=None, description="Period the outcome belongs to")


class ReportActualResponse(BaseModel):
    success: bool
    ranked: List[PredictorSummary]


def create_app(
    service: Optional[OracleService] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """
    Build the FastAPI app around one owned OracleService.

    Args:
        service: Prebuilt service (build_service() from settings when None)
        start_scheduler: Start the poll timer with the app lifespan
    """
    service = service or build_service()
    settings = service.settings
    engine = service.engine

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_scheduler:
            service.start()
        try:
            yield
        finally:
            if start_scheduler:
                service.stop()

    app = FastAPI(
        title="Color Oracle API",
        description="Multi-predictor color/size forecasting with per-predictor accuracy",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.service = service

    wildcard = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not wildcard,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/status", response_model=StatusResponse)
    async def get_status():
        """Engine status, cached snapshot, pending batch and leaderboard."""
        return build_status(engine.state, service.feed_health())

    @app.get("/api/predictors", response_model=List[PredictorSummary])
    async def get_predictors():
        """Predictors ranked by accuracy."""
        return engine.state.ledger.rank()

    @app.post("/api/predict", response_model=PredictResponse)
    async def force_predict():
        """Fetch the feed and solicit a fresh batch right now."""
        result = await asyncio.wrap_future(service.queue.submit(engine.force_resolicit))
        return {
            "success": result.batch is not None,
            "batch": result.batch.to_dict() if result.batch else None,
            "snapshot": [entry.to_dict() for entry in result.snapshot],
        }

    @app.post("/api/report-actual", response_model=ReportActualResponse)
    async def report_actual(request: ReportActualRequest):
        """Judge the pending batch against a manually reported outcome."""
        future = service.queue.submit(engine.report_actual, request.actual, request.period_id)
        try:
            ranked = await asyncio.wrap_future(future)
        except InvalidActualError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return {"success": True, "ranked": ranked}

    @app.get("/api/health")
    async def health_check():
        """Simple health check endpoint."""
        return {
            "status": "healthy",
            "scheduler_running": service.scheduler.running,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    static_dir = Path(settings.static_dir)
    if not static_dir.is_absolute():
        static_dir = BASE_DIR / static_dir
    if static_dir.is_dir():
        app.mount("/", StaticFiles(directory=str(static_dir), html=True), name="static")
    else:
        logger.info(f"Static directory {static_dir} not found, serving API only")

    return app


if __name__ == "__main__":
    import uvicorn

    from ..config.settings import load_settings
    from ..logging_config import configure_from_settings

    oracle_settings = load_settings()
    configure_from_settings(oracle_settings)
    uvicorn.run(create_app(build_service(oracle_settings)),
                host=oracle_settings.host, port=oracle_settings.port)
