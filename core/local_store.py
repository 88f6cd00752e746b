import time
from typing import Any, Callable, Dict, List, Optional

from .logger import get_logger
from .models import Product, Rating
from .storage import DurableStore

logger = get_logger(__name__)


def _epoch_millis() -> int:
    return int(time.time() * 1000)


class LocalOverrideStore:
    """
    Records created or edited in this session. Kept most-recent-first and
    written back to the durable store after every mutation.
    """

    def __init__(self, store: DurableStore, clock: Callable[[], int] = _epoch_millis):
        self.store = store
        self.clock = clock
        self._records: List[Product] = store.load_local_products()
        self._last_id = max((p.id for p in self._records), default=0)

    def _persist(self):
        self.store.save_local_products(self._records)

    def _next_id(self) -> int:
        # Millisecond clock, bumped past the last id if two creates share a tick
        # or the wall clock moved backwards since a previous session.
        candidate = max(int(self.clock()), self._last_id + 1)
        self._last_id = candidate
        return candidate

    def list(self) -> List[Product]:
        return list(self._records)

    def get(self, product_id: int) -> Optional[Product]:
        for p in self._records:
            if p.id == product_id:
                return p
        return None

    def owns(self, product_id: int) -> bool:
        return self.get(product_id) is not None

    def create(self, fields: Dict[str, Any]) -> Product:
        stock = int(fields.get("stock") or 0)
        product = Product(
            id=self._next_id(),
            title=fields.get("title", ""),
            price=fields.get("price", 0),
            description=fields.get("description") or "",
            category=fields.get("category") or "",
            image=fields.get("image") or "",
            rating=Rating(rate=0, count=0),
            stock=stock,
            inStock=stock > 0,
        )
        self._records.insert(0, product)
        self._persist()
        logger.info("Created local product %s (%s)", product.id, product.title)
        return product

    def update(self, product_id: int, fields: Dict[str, Any]) -> Optional[Product]:
        """Merge ``fields`` into an owned record; unknown ids are left alone."""
        for index, p in enumerate(self._records):
            if p.id == product_id:
                updated = p.merged(fields)
                self._records[index] = updated
                self._persist()
                return updated
        logger.debug("Local store does not own product %s; update skipped", product_id)
        return None

    def delete(self, product_id: int) -> bool:
        remaining = [p for p in self._records if p.id != product_id]
        removed = len(remaining) != len(self._records)
        self._records = remaining
        self._persist()
        return removed

    def clear(self):
        self._records = []
        self.store.clear_local_products()
        logger.info("Cleared all local products")
