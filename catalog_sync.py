import asyncio
import os
import random
import time

from core.local_store import LocalOverrideStore
from core.logger import get_logger
from core.state import ProductStore
from core.storage import DurableStore
from fetchers.fakestore import RemoteCatalogClient

logger = get_logger(__name__)

POLL_MINUTES = int(os.getenv("POLL_MINUTES", "10"))
MODE = os.getenv("MODE", "once").lower()  # "daemon" or "once"


def jitter_sleep_minutes(minutes: int) -> None:
    base = max(1, minutes)
    jitter = random.uniform(-0.1 * base, 0.1 * base)
    total = base + jitter
    logger.info("Sleeping %.1f minutes before next refresh.", total)
    time.sleep(total * 60)


def build_store(db_path: str | None = None, remote=None) -> ProductStore:
    """Wire the durable store, local overrides and remote client together."""
    storage = DurableStore(db_path)
    storage.ensure_db()
    local = LocalOverrideStore(storage)
    return ProductStore(remote or RemoteCatalogClient(), local, storage)


def log_summary(store: ProductStore) -> None:
    local_count = len(store.local.list())
    logger.info(
        "Catalog: %d products (%d local), %d visible with filters %s",
        len(store.products),
        local_count,
        len(store.filtered_products),
        store.filters.to_dict(),
    )
    changes = store.last_changes
    if changes is None or changes.empty:
        logger.info("No catalog changes since the last snapshot.")
        return
    logger.info("Catalog changes: %s", changes.describe())
    for product in changes.added:
        logger.debug("Added: %s (%s)", product.title, product.id)
    for product in changes.removed:
        logger.debug("Removed: %s (%s)", product.title, product.id)


async def refresh(store: ProductStore) -> int:
    result = await store.fetch()
    if not result.ok:
        logger.error("Catalog refresh failed: %s", result.error)
        return 1
    if result.degraded:
        logger.warning("Catalog refreshed from local data only: %s", result.remote_error)
    log_summary(store)
    return 0


def run_once(store: ProductStore | None = None) -> int:
    store = store or build_store()
    return asyncio.run(refresh(store))


def run_daemon() -> None:
    logger.info("Starting daemon; refresh every %d minutes.", POLL_MINUTES)
    store = build_store()

    while True:
        try:
            asyncio.run(refresh(store))
        except Exception as e:
            logger.exception("Unhandled error in daemon loop: %s", e)

        jitter_sleep_minutes(POLL_MINUTES)


if __name__ == "__main__":
    try:
        if MODE == "daemon":
            run_daemon()
        else:
            raise SystemExit(run_once())
    except Exception as e:
        logger.exception("Fatal catalog sync error: %s", e)
        raise SystemExit(2)
