# src/masterlist/catalog/importer.py
"""
Import-side validation and legacy normalization.

Payload shape:
    {"schema": 1, "version": 3, "updatedAt": "...", "categories": [["Name", "item", ...], ...]}

Older builds wrote a whole row as a JSON string in element 1:
    ["Name", "[\"Name\",\"item1\",\"item2\"]"]
Such rows are flattened back to ["Name", "item1", "item2"] before the swap.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .errors import ParseError, ShapeError
from .snapshot import Snapshot

logger = logging.getLogger(__name__)


def validate(payload: Any) -> Dict[str, Any]:
    """
    Structural checks in a fixed order. Raises ShapeError naming the first
    violation; returns the payload unchanged when it passes.
    """
    if not isinstance(payload, dict):
        raise ShapeError("File is not a JSON object.", field="$")
    categories = payload.get("categories")
    if not isinstance(categories, list):
        raise ShapeError("Missing or invalid 'categories' array.", field="categories")
    for position, row in enumerate(categories):
        if not isinstance(row, list) or len(row) < 1:
            raise ShapeError(
                "Each category row must be an array with at least a category name.",
                field=f"categories[{position}]",
            )
        if not isinstance(row[0], str):
            raise ShapeError("Category name (index 0) must be a string.", field=f"categories[{position}][0]")
        if not row[0].strip():
            raise ShapeError("Category name (index 0) must not be empty.", field=f"categories[{position}][0]")
    return payload


def _looks_legacy(row: List[Any]) -> bool:
    if len(row) < 2 or not isinstance(row[1], str):
        return False
    text = row[1].strip()
    return text.startswith("[") and '"' in text


def _decode_legacy_field(text: str) -> List[str]:
    """Decodes a JSON-encoded row. Raises ParseError when it is not one."""
    try:
        inner = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Legacy field is not valid JSON: {e}") from e
    if not isinstance(inner, list) or not inner:
        raise ParseError("Legacy field does not decode to a non-empty array.")
    name = str(inner[0]).strip()
    if not name:
        raise ParseError("Legacy field has an empty category name.")
    return [name] + [str(item) for item in inner[1:]]


def normalize_legacy(row: List[Any]) -> List[str]:
    """
    Returns the canonical form of `row`. Legacy-encoded rows are flattened;
    a legacy field that fails to parse leaves the row as it was.
    """
    if _looks_legacy(row):
        try:
            flattened = _decode_legacy_field(row[1].strip())
            logger.info(f"Normalized legacy row '{row[0]}' -> '{flattened[0]}' ({len(flattened) - 1} items)")
            return flattened
        except ParseError as e:
            logger.warning(f"Keeping row '{row[0]}' unmodified: {e}")
    return [row[0].strip()] + [str(item) for item in row[1:]]


def normalize_rows(categories: List[List[Any]]) -> List[List[str]]:
    """Normalizes every row of an already validated payload."""
    return [normalize_legacy(row) for row in categories]


def parse_payload(text: str) -> Dict[str, Any]:
    """Parses and validates payload text. Raises ParseError or ShapeError."""
    try:
        payload = json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        raise ParseError(f"Could not parse JSON: {e}") from e
    return validate(payload)


def build_snapshot(payload: Dict[str, Any]) -> Snapshot:
    """Validated payload -> Snapshot with canonical rows."""
    snapshot = Snapshot.from_dict(validate(payload))
    snapshot.categories = normalize_rows(snapshot.categories)
    return snapshot


def read_text(path: Union[str, Path]) -> Optional[str]:
    """File-read capability: the file's text, or None on any read failure."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        logger.error(f"Could not read {path}: {e}")
        return None
