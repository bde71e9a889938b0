import argparse
import asyncio
import dataclasses
import traceback
from typing import Awaitable, Callable, Dict, Optional

from common_utils.load_env import load_env_file
from core.observation.logger import get_logger
from core.sync import SyncConfig, SyncSummary


logger = get_logger(__name__)


def _sync_books(config: SyncConfig, days: Optional[int]) -> Awaitable[SyncSummary]:
    from devops_scripts.data_fix.es_sync_books_docs import sync_books_docs

    return sync_books_docs(config, days=days)


# Index alias -> resync entry point
SYNC_HANDLERS: Dict[str, Callable[[SyncConfig, Optional[int]], Awaitable[SyncSummary]]] = {
    "books": _sync_books,
}


def build_config(
    batch_size: Optional[int] = None,
    concurrency: Optional[int] = None,
    save: Optional[bool] = None,
    refresh: bool = False,
) -> SyncConfig:
    """SYNC_* environment configuration with command line overrides applied"""
    overrides = {}
    if batch_size is not None:
        overrides["batch_size"] = batch_size
    if concurrency is not None:
        overrides["concurrency"] = concurrency
    if save is not None:
        overrides["save_on_synchronize"] = save
    if refresh:
        overrides["refresh_on_close"] = True
    return dataclasses.replace(SyncConfig.from_env(), **overrides)


async def run(index_name: str, config: SyncConfig, days: Optional[int]) -> SyncSummary:
    """Synchronize MongoDB data to the specified Elasticsearch index."""
    try:
        handler = SYNC_HANDLERS.get(index_name)
        if handler is None:
            raise ValueError(
                f"Unsupported index type: {index_name}, expected one of {sorted(SYNC_HANDLERS)}"
            )
        logger.info("Synchronizing index %s with %s", index_name, config)
        return await handler(config, days)
    except Exception as exc:  # noqa: BLE001
        logger.error("Failed to synchronize documents: %s", exc)
        traceback.print_exc()
        raise


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Synchronize MongoDB data to Elasticsearch"
    )
    parser.add_argument(
        "--index-name", "-i", required=True, help="Index alias, e.g.: books"
    )
    parser.add_argument(
        "--batch-size",
        "-b",
        type=int,
        default=None,
        help="Cursor batch size, default SYNC_BATCH_SIZE or 500",
    )
    parser.add_argument(
        "--concurrency",
        "-c",
        type=int,
        default=None,
        help="Records processed at the same time, default SYNC_CONCURRENCY or 1",
    )
    parser.add_argument(
        "--no-save",
        action="store_true",
        help="Do not save synchronized records back to MongoDB",
    )
    parser.add_argument(
        "--days",
        "-d",
        type=int,
        default=None,
        help="Process only documents created in the last N days, default all",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Refresh the index once the run is finished",
    )
    args = parser.parse_args(argv)

    load_env_file()
    config = build_config(
        batch_size=args.batch_size,
        concurrency=args.concurrency,
        save=False if args.no_save else None,
        refresh=args.refresh,
    )
    summary = asyncio.run(run(args.index_name, config, args.days))
    return 0 if summary.failed == 0 else 1


if __name__ == "__main__":
    raise SystemExit(main())
