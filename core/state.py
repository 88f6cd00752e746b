import asyncio
from typing import Any, Callable, Dict, List, Optional

from .diff import ChangeSummary, diff_products
from .errors import CatalogError, NotFound, RemoteUnavailable
from .local_store import LocalOverrideStore
from .logger import get_logger
from .merge import merge_products
from .models import (
    CanonicalState,
    CommandResult,
    CommandStatus,
    DEFAULT_CATEGORIES,
    FilterSettings,
    Product,
    SORT_FIELDS,
    SORT_ORDERS,
)
from .projection import project_products
from .storage import DurableStore

logger = get_logger(__name__)

COMMANDS = ("fetch", "create", "update", "delete", "fetch_one", "categories")


class ProductStore:
    """
    Owns the session's CanonicalState.

    Async commands only suspend while talking to the remote service; every
    state change after that runs in one step that also recomputes the
    projection and rewrites the snapshot. Commands never raise: they return a
    CommandResult and set ``error`` on rejection.
    """

    def __init__(self, remote, local: LocalOverrideStore, storage: DurableStore):
        self.remote = remote
        self.local = local
        self.storage = storage

        products, filters = storage.load_snapshot()
        self.state = CanonicalState(products=products, filters=filters)
        self.state.filtered_products = project_products(products, filters)

        self._status: Dict[str, CommandStatus] = {c: CommandStatus.IDLE for c in COMMANDS}
        self.last_changes: Optional[ChangeSummary] = None

    # -- Read access --

    @property
    def products(self) -> List[Product]:
        return self.state.products

    @property
    def filtered_products(self) -> List[Product]:
        return self.state.filtered_products

    @property
    def filters(self) -> FilterSettings:
        return self.state.filters

    @property
    def loading(self) -> bool:
        return self.state.loading

    @property
    def error(self) -> Optional[str]:
        return self.state.error

    def status(self, command: str) -> CommandStatus:
        return self._status[command]

    def find(self, product_id: int) -> Optional[Product]:
        for p in self.state.products:
            if p.id == product_id:
                return p
        return None

    # -- Lifecycle helpers --

    def _settle(self):
        self.state.filtered_products = project_products(self.state.products, self.state.filters)
        logger.debug(
            "Projection recomputed: %d of %d products visible",
            len(self.state.filtered_products),
            len(self.state.products),
        )
        self.storage.save_snapshot(self.state.products, self.state.filters)

    def _begin(self, command: str):
        self._status[command] = CommandStatus.PENDING
        self.state.loading = True
        self.state.error = None

    def _fulfill(
        self,
        command: str,
        payload: Any = None,
        remote_error: Optional[str] = None,
    ) -> CommandResult:
        self._settle()
        self.state.loading = False
        self._status[command] = CommandStatus.FULFILLED
        logger.info(
            "Command %s fulfilled%s",
            command,
            " (remote not synced)" if remote_error else "",
        )
        return CommandResult(
            command=command,
            status=CommandStatus.FULFILLED,
            payload=payload,
            remote_synced=remote_error is None,
            remote_error=remote_error,
        )

    def _reject(self, command: str, message: str) -> CommandResult:
        self.state.loading = False
        self.state.error = message
        self._status[command] = CommandStatus.REJECTED
        logger.error("Command %s rejected: %s", command, message)
        return CommandResult(command=command, status=CommandStatus.REJECTED, error=message)

    async def _mirror(self, action: str, call: Callable, *args) -> Optional[str]:
        try:
            await asyncio.to_thread(call, *args)
        except RemoteUnavailable as e:
            logger.warning("API %s failed, but the local change was kept: %s", action, e)
            return str(e)
        return None

    # -- Async commands --

    async def fetch(self) -> CommandResult:
        self._begin("fetch")
        remote_error = None
        try:
            try:
                remote = await asyncio.to_thread(self.remote.fetch_all)
            except RemoteUnavailable as e:
                logger.warning("API fetch failed, using local products only: %s", e)
                remote_error = str(e)
                remote = []

            local = self.local.list()
            if remote_error is not None and not local:
                if not self.state.products:
                    return self._reject("fetch", f"Failed to fetch products: {remote_error}")
                logger.warning(
                    "No local products; keeping %d cached products", len(self.state.products)
                )
                return self._fulfill("fetch", self.state.products, remote_error)

            merged = merge_products(local, remote)
            logger.info(
                "Total products: %d (%d local + %d API)", len(merged), len(local), len(remote)
            )
            changes = diff_products(self.state.products, merged)
            self.last_changes = changes
            if not changes.empty:
                logger.info("Catalog changes since last snapshot: %s", changes.describe())
                for product, before, after in changes.price_changes:
                    logger.debug("Price change for %s: %.2f -> %.2f", product.id, before, after)

            self.state.products = merged
            return self._fulfill("fetch", merged, remote_error)
        except Exception as e:
            logger.exception("Unexpected error while fetching products")
            return self._reject("fetch", f"Failed to fetch products: {e}")

    async def create(self, fields: Dict[str, Any]) -> CommandResult:
        self._begin("create")
        try:
            product = self.local.create(fields)
        except (TypeError, ValueError) as e:
            return self._reject("create", f"Failed to create product: {e}")

        remote_error = await self._mirror("create", self.remote.create, dict(fields))

        products = [p for p in self.state.products if p.id != product.id]
        products.insert(0, product)
        self.state.products = products
        return self._fulfill("create", product, remote_error)

    async def update(self, product_id: int, fields: Dict[str, Any]) -> CommandResult:
        self._begin("update")
        try:
            # reject bad values before anything is written
            current = self.find(product_id)
            if current is not None:
                current.merged(fields)
            self.local.update(product_id, fields)
        except (TypeError, ValueError) as e:
            return self._reject("update", f"Failed to update product with id {product_id}: {e}")

        remote_error = await self._mirror("update", self.remote.update, product_id, dict(fields))

        updated = None
        for index, p in enumerate(self.state.products):
            if p.id == product_id:
                try:
                    updated = p.merged(fields)
                except (TypeError, ValueError) as e:
                    return self._reject(
                        "update", f"Failed to update product with id {product_id}: {e}"
                    )
                self.state.products[index] = updated
                break
        return self._fulfill("update", updated, remote_error)

    async def delete(self, product_id: int) -> CommandResult:
        self._begin("delete")
        self.local.delete(product_id)

        remote_error = await self._mirror("delete", self.remote.delete, product_id)

        self.state.products = [p for p in self.state.products if p.id != product_id]
        return self._fulfill("delete", product_id, remote_error)

    # -- Queries that do not change canonical state --

    async def fetch_one(self, product_id: int) -> CommandResult:
        self._status["fetch_one"] = CommandStatus.PENDING
        local = self.local.get(product_id)
        if local is not None:
            self._status["fetch_one"] = CommandStatus.FULFILLED
            return CommandResult("fetch_one", CommandStatus.FULFILLED, payload=local)

        try:
            product = await asyncio.to_thread(self.remote.fetch_one, product_id)
        except NotFound as e:
            self._status["fetch_one"] = CommandStatus.REJECTED
            return CommandResult("fetch_one", CommandStatus.REJECTED, error=str(e))
        except CatalogError as e:
            self._status["fetch_one"] = CommandStatus.REJECTED
            return CommandResult(
                "fetch_one",
                CommandStatus.REJECTED,
                error=f"Failed to fetch product with id {product_id}: {e}",
            )
        self._status["fetch_one"] = CommandStatus.FULFILLED
        return CommandResult("fetch_one", CommandStatus.FULFILLED, payload=product)

    async def categories(self, defaults: Optional[List[str]] = None) -> CommandResult:
        self._status["categories"] = CommandStatus.PENDING
        try:
            names = await asyncio.to_thread(self.remote.fetch_categories)
        except RemoteUnavailable as e:
            logger.warning("Category lookup failed, using defaults: %s", e)
            self._status["categories"] = CommandStatus.FULFILLED
            return CommandResult(
                "categories",
                CommandStatus.FULFILLED,
                payload=list(DEFAULT_CATEGORIES if defaults is None else defaults),
                remote_synced=False,
                remote_error=str(e),
            )
        self._status["categories"] = CommandStatus.FULFILLED
        return CommandResult("categories", CommandStatus.FULFILLED, payload=names)

    # -- Synchronous commands --

    def set_search_term(self, term: str):
        self.state.filters.searchTerm = term or ""
        self._settle()

    def set_selected_category(self, category: str):
        self.state.filters.selectedCategory = category
        self._settle()

    def set_sorting(self, sort_by: str, sort_order: Optional[str] = None):
        """
        Apply a sort. Without an explicit order, picking the active field again
        flips asc/desc and picking a new field starts ascending. Unknown values
        are logged and leave the current settings alone.
        """
        if sort_by not in SORT_FIELDS:
            logger.warning("Ignoring unknown sort field %r", sort_by)
            return
        if sort_order is None:
            if sort_by == self.state.filters.sortBy:
                sort_order = "desc" if self.state.filters.sortOrder == "asc" else "asc"
            else:
                sort_order = "asc"
        elif sort_order not in SORT_ORDERS:
            logger.warning("Ignoring unknown sort order %r", sort_order)
            return

        self.state.filters.sortBy = sort_by
        self.state.filters.sortOrder = sort_order
        self._settle()

    def clear_error(self):
        self.state.error = None

    def update_product_stock(self, product_id: int, stock: int, in_stock: bool):
        for index, p in enumerate(self.state.products):
            if p.id == product_id:
                self.state.products[index] = p.merged({"stock": stock, "inStock": in_stock})
                self._settle()
                return

    def clear_local_products(self):
        self.local.clear()
