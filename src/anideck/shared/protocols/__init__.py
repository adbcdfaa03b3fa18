"""Protocol interfaces for dependency inversion."""

from .services import CatalogClientProtocol, LibraryStoreProtocol

__all__ = ["CatalogClientProtocol", "LibraryStoreProtocol"]
