from typing import Iterable, List

from .models import Product


def merge_products(local: Iterable[Product], remote: Iterable[Product]) -> List[Product]:
    """
    Reconcile locally authored records with the remote catalog.
    - local: most-recent-first local records
    - remote: remote records in service order
    Returns local records followed by remote ones, deduplicated by id. The first
    occurrence wins, so a local record always shadows a remote one sharing its id.
    """
    seen: set[int] = set()
    merged: List[Product] = []
    for product in list(local) + list(remote):
        if product.id in seen:
            continue
        seen.add(product.id)
        merged.append(product)
    return merged
