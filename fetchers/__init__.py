from .fakestore import RemoteCatalogClient

__all__ = ["RemoteCatalogClient"]
