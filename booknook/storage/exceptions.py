"""
Errors raised by the catalog store.

Lookups that find nothing return None rather than raising, so the store
only has two failure kinds of its own.
"""


class CatalogStoreError(Exception):
    """Base exception for catalog store errors."""


class ConstraintViolation(CatalogStoreError):
    """A write was rejected by a uniqueness rule."""

    def __init__(self, entity: str, fields: tuple[str, ...]):
        self.entity = entity
        self.fields = fields
        super().__init__(
            f"{entity} with the same {', '.join(fields)} already exists"
        )


class ConnectivityFailure(CatalogStoreError):
    """The backing database could not be reached."""

    def __init__(self, database_url: str, reason: str = ""):
        self.database_url = database_url
        self.reason = reason
        message = f"Cannot connect to database at {database_url}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
