class CatalogError(Exception):
    """Base class for catalog sync failures."""


class RemoteUnavailable(CatalogError):
    """The remote catalog service could not be reached or answered garbage."""


class NotFound(CatalogError):
    """The remote catalog service has no product with the requested id."""

    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


class StorageWriteFailure(CatalogError):
    """A snapshot could not be written to the durable store."""


class StorageReadFailure(CatalogError):
    """A snapshot could not be read back (missing table, corrupt blob, ...)."""
