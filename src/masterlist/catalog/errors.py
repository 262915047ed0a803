"""Error kinds raised by the catalog core.

Mutation errors leave the store untouched; persistence errors are reported
as a status signal and never undo a committed mutation.
"""

from typing import Optional


class CatalogError(Exception):
    """Base exception for all catalog errors."""

    pass


class ShapeError(CatalogError):
    """Malformed import payload. `field` names the first failing location."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DuplicateName(CatalogError):
    """A category with an equivalent name already exists."""

    pass


class NotFound(CatalogError):
    """The requested category or item does not exist."""

    pass


class EmptyValue(CatalogError):
    """A category name or item is blank after trimming."""

    pass


class ParseError(CatalogError):
    """Malformed JSON text, either a whole payload or a legacy row field."""

    pass


class PersistenceError(CatalogError):
    """Storage read/write failure."""

    pass


class ExportError(PersistenceError):
    """Every export sink failed; the export did not land anywhere."""

    pass
