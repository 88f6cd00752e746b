import os
from dataclasses import dataclass, field
from typing import List, Sequence, Tuple

from .models import Product

PRICE_CHANGE_LOG_THRESHOLD = float(os.getenv("PRICE_CHANGE_LOG_THRESHOLD", "20"))


@dataclass
class ChangeSummary:
    added: List[Product] = field(default_factory=list)
    removed: List[Product] = field(default_factory=list)
    price_changes: List[Tuple[Product, float, float]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not (self.added or self.removed or self.price_changes)

    def describe(self) -> str:
        return (
            f"{len(self.added)} added · {len(self.removed)} removed · "
            f"{len(self.price_changes)} price changes"
        )


def diff_products(
    previous: Sequence[Product],
    current: Sequence[Product],
    threshold: float | None = None,
) -> ChangeSummary:
    """
    Compare two canonical lists by id.
    Added/removed keep the order of the list they come from; price changes are
    kept when the relative move is at least ``threshold`` percent.
    """
    if threshold is None:
        threshold = PRICE_CHANGE_LOG_THRESHOLD

    old_map = {p.id: p for p in previous}
    new_map = {p.id: p for p in current}

    summary = ChangeSummary()
    summary.added = [p for p in current if p.id not in old_map]
    summary.removed = [p for p in previous if p.id not in new_map]

    for p in current:
        old = old_map.get(p.id)
        if old is None:
            continue
        before, after = old.price, p.price
        if before == after:
            continue

        if before == 0:
            pct = 100.0
        else:
            pct = abs(after - before) * 100.0 / abs(before)

        if pct >= threshold:
            summary.price_changes.append((p, before, after))

    return summary
