# src/masterlist/catalog/snapshot.py

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

SCHEMA_VERSION = 1


def now_iso(moment: Optional[datetime] = None) -> str:
    """ISO-8601 at seconds resolution with the numeric local UTC offset."""
    moment = moment or datetime.now()
    if moment.tzinfo is None:
        moment = moment.astimezone()
    return moment.replace(microsecond=0).isoformat()


def parse_iso(value: Any) -> Optional[datetime]:
    """Parses an offset-aware ISO-8601 string; None for anything else."""
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo is not None else None


def next_timestamp(previous: Optional[str] = None, moment: Optional[datetime] = None) -> str:
    """
    Stamp for a new updatedAt. Never earlier than `previous`, so the
    timestamp stays non-decreasing even if the wall clock steps back.
    """
    stamp = now_iso(moment)
    previous_dt = parse_iso(previous)
    if previous_dt is not None and previous_dt > datetime.fromisoformat(stamp):
        return previous
    return stamp


@dataclass
class Snapshot:
    """
    Versioned, serializable projection of the store.
    `categories` is always an independent copy of the store rows.
    """
    version: int = 1
    updated_at: str = field(default_factory=now_iso)
    categories: List[List[str]] = field(default_factory=list)
    schema: int = SCHEMA_VERSION

    @classmethod
    def empty(cls) -> "Snapshot":
        return cls(version=1, updated_at=now_iso(), categories=[])

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Snapshot":
        """
        Builds a snapshot from an already shape-validated payload.
        Missing or bogus metadata falls back to schema 1 / version 1 / now.
        """
        version = data.get("version")
        if isinstance(version, bool) or not isinstance(version, int) or version < 1:
            version = 1
        updated_at = data.get("updatedAt")
        if parse_iso(updated_at) is None:
            updated_at = now_iso()
        schema = data.get("schema")
        if isinstance(schema, bool) or not isinstance(schema, int) or schema < 1:
            schema = SCHEMA_VERSION
        return cls(
            version=version,
            updated_at=updated_at,
            categories=copy.deepcopy(data.get("categories", [])),
            schema=schema,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schema": self.schema,
            "version": self.version,
            "updatedAt": self.updated_at,
            "categories": copy.deepcopy(self.categories),
        }
