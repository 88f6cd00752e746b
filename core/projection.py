import unicodedata
from typing import List, Sequence

from .models import ALL_CATEGORIES, FilterSettings, Product


def _name_key(product: Product):
    # Accent- and case-insensitive first; on ties lowercase sorts before uppercase.
    folded = unicodedata.normalize("NFKD", product.title)
    folded = "".join(ch for ch in folded if not unicodedata.combining(ch)).casefold()
    return (folded, product.title.swapcase())


def _price_key(product: Product):
    return product.price


SORT_KEYS = {
    "name": _name_key,
    "price": _price_key,
}


def project_products(products: Sequence[Product], filters: FilterSettings) -> List[Product]:
    """Derive the filtered/sorted view. Pure: the input sequence is not touched."""
    result = list(products)

    term = filters.searchTerm.casefold()
    if term:
        result = [
            p
            for p in result
            if term in p.title.casefold() or term in p.description.casefold()
        ]

    if filters.selectedCategory != ALL_CATEGORIES:
        result = [p for p in result if p.category == filters.selectedCategory]

    key = SORT_KEYS.get(filters.sortBy)
    if key is not None:
        # sorted() keeps equal keys in input order for reverse=True as well
        result = sorted(result, key=key, reverse=filters.sortOrder == "desc")

    return result
