"""Catalog core: store, session, persistence, import and export."""

from .errors import (
    CatalogError,
    DuplicateName,
    EmptyValue,
    ExportError,
    NotFound,
    ParseError,
    PersistenceError,
    ShapeError,
)
from .exporter import Exporter, ExportResult, name_export_file
from .persistence import PersistenceManager, PersistenceState
from .session import CatalogSession
from .snapshot import Snapshot
from .store import CategoryStore
from .views import CatalogView

__all__ = [
    "CatalogError",
    "CatalogSession",
    "CatalogView",
    "CategoryStore",
    "DuplicateName",
    "EmptyValue",
    "ExportError",
    "ExportResult",
    "Exporter",
    "NotFound",
    "ParseError",
    "PersistenceError",
    "PersistenceManager",
    "PersistenceState",
    "ShapeError",
    "Snapshot",
    "name_export_file",
]
