"""Wiring of the engine, its collaborators and the tick scheduler."""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from .config.settings import OracleSettings, load_settings
from .forecasting.backends import build_backends
from .forecasting.engine import PeriodEngine, SnapshotSource
from .forecasting.predictors import PredictorPool
from .forecasting.scheduler import TickQueue, TickScheduler
from .ingest.fetch_feed import FeedFetcher

logger = logging.getLogger(__name__)


@dataclass
class OracleService:
    settings: OracleSettings
    engine: PeriodEngine
    queue: TickQueue
    scheduler: TickScheduler
    fetcher: Optional[FeedFetcher] = None

    def feed_health(self) -> Optional[dict]:
        return self.fetcher.health.to_dict() if self.fetcher else None

    def start(self) -> None:
        self.scheduler.start()

    def stop(self) -> None:
        self.scheduler.stop(timeout=5)
        self.queue.shutdown(wait=False)


def build_service(
    settings: Optional[OracleSettings] = None,
    pool: Optional[PredictorPool] = None,
    fetch_snapshot: Optional[SnapshotSource] = None,
) -> OracleService:
    """
    Build a service from settings.

    Args:
        settings: Loaded settings (load_settings() when None)
        pool: Predictor pool override; OpenAI backends from settings when None
        fetch_snapshot: Snapshot source override; HTTP feed fetcher when None
    """
    settings = settings or load_settings()

    fetcher = None
    if fetch_snapshot is None:
        fetcher = FeedFetcher(
            settings.feed_url,
            params=settings.feed_params,
            headers=settings.feed_headers,
            timeout=settings.feed_timeout_seconds,
            limit_param=settings.feed_limit_param,
        )
        fetch_snapshot = fetcher.fetch_snapshot

    if pool is None:
        pool = PredictorPool(
            build_backends(settings),
            slot_timeout=settings.slot_timeout_seconds,
            rng=random.Random(),
        )

    engine = PeriodEngine(
        fetch_snapshot,
        pool,
        history_capacity=settings.history_capacity,
        snapshot_limit=settings.snapshot_limit,
    )
    queue = TickQueue(engine)
    scheduler = TickScheduler(queue, settings.poll_interval_seconds)

    configured = sum(1 for i in range(1, pool.slot_count + 1) if pool.has_backend(i))
    logger.info(f"Service built: {pool.slot_count} slots, {configured} with API keys")
    return OracleService(settings, engine, queue, scheduler, fetcher)
