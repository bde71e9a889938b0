import traceback
from datetime import timedelta
from typing import Optional, Dict, Any

from common_utils.datetime_utils import get_now_with_timezone
from core.observation.logger import get_logger
from core.sync import SyncConfig, SyncSummary

logger = get_logger(__name__)


async def sync_books_docs(
    config: SyncConfig, days: Optional[int] = None
) -> SyncSummary:
    """
    Resynchronize the books collection into the books index.

    Args:
        config: Synchronization configuration
        days: Only process books created in the last N days; None means process all

    Returns:
        SyncSummary: Counters of the run
    """
    from biz_layer.es_resync import BookResyncService
    from component.resync_lifespan import resync_clients
    from infra_layer.adapters.out.persistence.document.library.book import Book

    query_filter: Dict[str, Any] = {}
    if days is not None:
        start_time = get_now_with_timezone() - timedelta(days=days)
        query_filter["created_at"] = {"$gte": start_time}
        logger.info(
            "Only processing books created in the past %s days (starting from %s)",
            days,
            start_time,
        )

    async with resync_clients([Book]):
        service = BookResyncService()
        await service.es_repo.init_index()

        logger.info(
            "Starting to sync books to ES, total matching: %s",
            await service.mongo_repo.count(query_filter),
        )
        try:
            summary = await service.synchronize(query_filter, config).wait_closed()
        except Exception as exc:  # noqa: BLE001
            logger.error("An error occurred during sync: %s", exc)
            traceback.print_exc()
            raise

    logger.info(
        "Sync completed! Total processed: %s, Success: %s, Failed: %s, Saved: %s, Duration: %.2fs",
        summary.pulled,
        summary.succeeded,
        summary.failed,
        summary.persisted,
        summary.duration_seconds or 0.0,
    )
    if summary.fatal_error is not None:
        raise summary.fatal_error
    return summary
