from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

ALL_CATEGORIES = "all"

SORT_FIELDS = ("none", "name", "price")
SORT_ORDERS = ("asc", "desc")

# Offered when the remote service cannot list its categories.
DEFAULT_CATEGORIES = [
    "electronics",
    "jewelery",
    "men's clothing",
    "women's clothing",
    "beauty",
    "furniture",
    "groceries",
    "sports",
    "automotive",
    "books",
]

# Fields a caller may supply when creating or editing a product.
EDITABLE_FIELDS = (
    "title",
    "price",
    "description",
    "category",
    "image",
    "stock",
    "inStock",
)


@dataclass
class Rating:
    rate: float = 0.0
    count: int = 0


@dataclass
class Product:
    """
    Normalized catalog product, shared by remote and locally authored records.
    Field names follow the remote JSON schema so records serialize unchanged.
    """
    id: int
    title: str
    price: float
    description: str = ""
    category: str = ""
    image: str = ""
    rating: Rating = field(default_factory=Rating)
    stock: int = 0
    inStock: bool = False

    def __post_init__(self):
        if not isinstance(self.rating, Rating):
            raw = self.rating if isinstance(self.rating, dict) else {}
            self.rating = Rating(
                rate=float(raw.get("rate", 0) or 0),
                count=int(raw.get("count", 0) or 0),
            )
        if not str(self.title or "").strip():
            raise ValueError("Product title is required")
        if self.price is None or float(self.price) < 0:
            raise ValueError(f"Product price must be non-negative (got {self.price!r})")
        if self.stock is None or int(self.stock) < 0:
            raise ValueError(f"Product stock must be non-negative (got {self.stock!r})")
        self.id = int(self.id)
        self.price = float(self.price)
        self.stock = int(self.stock)
        self.inStock = bool(self.inStock)
        self.title = str(self.title)
        self.description = str(self.description or "")
        self.category = str(self.category or "")
        self.image = str(self.image or "")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Product":
        stock = data.get("stock")
        stock = 0 if stock is None else stock
        in_stock = data.get("inStock")
        if in_stock is None:
            in_stock = int(stock) > 0
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            price=data.get("price", 0),
            description=data.get("description") or "",
            category=data.get("category") or "",
            image=data.get("image") or "",
            # anything but an object is treated as "no rating yet"
            rating=data.get("rating") if isinstance(data.get("rating"), dict) else {},
            stock=stock,
            inStock=in_stock,
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def merged(self, fields: Dict[str, Any]) -> "Product":
        """Return a copy with ``fields`` applied (rating is never edited here)."""
        data = self.to_dict()
        for key, value in fields.items():
            if key in EDITABLE_FIELDS:
                data[key] = value
        if "stock" in fields and "inStock" not in fields:
            data["inStock"] = int(data["stock"]) > 0
        return Product.from_dict(data)


@dataclass
class FilterSettings:
    searchTerm: str = ""
    selectedCategory: str = ALL_CATEGORIES
    sortBy: str = "none"
    sortOrder: str = "asc"

    def __post_init__(self):
        if self.sortBy not in SORT_FIELDS:
            raise ValueError(f"Unknown sort field: {self.sortBy!r}")
        if self.sortOrder not in SORT_ORDERS:
            raise ValueError(f"Unknown sort order: {self.sortOrder!r}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class CanonicalState:
    """
    The single long-lived session state. ``filtered_products`` is only ever
    written by the state container, right after ``products`` or ``filters``.
    """
    products: List[Product] = field(default_factory=list)
    filters: FilterSettings = field(default_factory=FilterSettings)
    filtered_products: List[Product] = field(default_factory=list)
    loading: bool = False
    error: Optional[str] = None


class CommandStatus(str, Enum):
    IDLE = "idle"
    PENDING = "pending"
    FULFILLED = "fulfilled"
    REJECTED = "rejected"


@dataclass
class CommandResult:
    """
    Outcome of an asynchronous command.

    A fulfilled command whose remote mirror (or remote fetch) failed still
    reports FULFILLED, with ``remote_synced`` False and the failure text in
    ``remote_error``, so callers can surface a soft warning.
    """
    command: str
    status: CommandStatus
    payload: Any = None
    error: Optional[str] = None
    remote_synced: bool = True
    remote_error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is CommandStatus.FULFILLED

    @property
    def degraded(self) -> bool:
        return self.ok and not self.remote_synced
