# catalog_sync/models/exceptions.py

"""Error taxonomy for the catalog engine."""


class CatalogSyncError(Exception):
    """Base class for catalog engine errors."""


class SourceUnavailable(CatalogSyncError):
    """The remote API was unreachable or returned a malformed payload."""


class CacheCorrupt(CatalogSyncError):
    """The persistent cache could not be read or decoded."""


class MutationRejected(CatalogSyncError):
    """A mutation was refused; the catalog is unchanged."""
