# src/masterlist/catalog/store.py
import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from .errors import DuplicateName, EmptyValue, NotFound, ShapeError

logger = logging.getLogger(__name__)


def clean(value: Any) -> str:
    """Trimmed string form of a user-supplied value."""
    return "" if value is None else str(value).strip()


def normalize_name(value: Any) -> str:
    """Index key for a category name: trimmed and lower-cased."""
    return clean(value).lower()


class CategoryStore:
    """
    In-memory ordered collection of category rows `[name, item, item, ...]`
    plus a derived name index (normalized name -> row position).

    Every mutator validates before touching anything, so a failing call
    leaves both the rows and the index exactly as they were. The index is
    re-established after every structural change; when an import produced
    duplicate names it points at the first row carrying the name.
    """

    def __init__(self, rows: Optional[Iterable[List[str]]] = None):
        self._rows: List[List[str]] = []
        self._index: Dict[str, int] = {}
        if rows:
            self.replace_all(rows)

    def __len__(self) -> int:
        return len(self._rows)

    @staticmethod
    def _build_index(rows: List[List[str]]) -> Dict[str, int]:
        index: Dict[str, int] = {}
        for position, row in enumerate(rows):
            index.setdefault(normalize_name(row[0]), position)
        return index

    def _require_name(self, name: Any) -> str:
        cleaned = clean(name)
        if not cleaned:
            raise EmptyValue("Category name is empty.")
        return cleaned

    # --- Lookups ---

    def find(self, name: Any) -> Optional[int]:
        """Row position for `name`, or None."""
        return self._index.get(normalize_name(name))

    def lookup(self, name: Any) -> int:
        """Row position for `name` (case-insensitive, trimmed). Raises NotFound."""
        position = self.find(name)
        if position is None:
            raise NotFound(f"Category not found: {clean(name)!r}")
        return position

    def names(self) -> List[str]:
        return [row[0] for row in self._rows]

    def items(self, name: Any) -> List[str]:
        return list(self._rows[self.lookup(name)][1:])

    def rows(self) -> List[List[str]]:
        """Independent copy of every row."""
        return copy.deepcopy(self._rows)

    def index(self) -> Dict[str, int]:
        """Copy of the name index."""
        return dict(self._index)

    # --- Structural mutations ---

    def insert_category(self, name: Any) -> int:
        """Appends `[name]`. Raises DuplicateName for an equivalent existing name."""
        cleaned = self._require_name(name)
        key = normalize_name(cleaned)
        if key in self._index:
            raise DuplicateName(f"Category already exists: {cleaned!r}")
        self._rows.append([cleaned])
        self._index[key] = len(self._rows) - 1
        logger.debug(f"Inserted category '{cleaned}' at position {self._index[key]}")
        return self._index[key]

    def delete_category(self, name: Any) -> int:
        """
        Removes every row whose name matches, which also clears out duplicate
        names left by a corrupt import. Returns the number of rows removed.
        """
        key = normalize_name(name)
        if key not in self._index:
            raise NotFound(f"Category not found: {clean(name)!r}")
        kept = [row for row in self._rows if normalize_name(row[0]) != key]
        removed = len(self._rows) - len(kept)
        self._rows = kept
        self._index = self._build_index(self._rows)
        logger.debug(f"Deleted {removed} row(s) named '{clean(name)}'")
        return removed

    def replace_all(self, rows: Iterable[List[Any]]) -> None:
        """
        Atomically swaps in a new set of rows. Rows must already be
        normalized; a row without a usable name rejects the whole swap.
        """
        new_rows: List[List[str]] = []
        for position, row in enumerate(rows):
            if not isinstance(row, (list, tuple)) or not row:
                raise ShapeError(f"Row {position} is not a non-empty list.", field=f"categories[{position}]")
            if not isinstance(row[0], str) or not row[0].strip():
                raise ShapeError(f"Row {position} has no category name.", field=f"categories[{position}][0]")
            new_rows.append([row[0].strip()] + [str(item) for item in row[1:]])
        new_index = self._build_index(new_rows)
        self._rows, self._index = new_rows, new_index

    # --- Item mutations ---

    def add_item(self, category: Any, item: Any) -> str:
        """Appends the trimmed item; duplicates are allowed."""
        position = self.lookup(category)
        cleaned = clean(item)
        if not cleaned:
            raise EmptyValue("Item is empty.")
        self._rows[position].append(cleaned)
        return cleaned

    def remove_item(self, category: Any, item: Any) -> str:
        """Removes the first case-insensitive match of `item`; returns it."""
        position = self.lookup(category)
        target = normalize_name(item)
        if not target:
            raise EmptyValue("Item is empty.")
        row = self._rows[position]
        for i in range(1, len(row)):
            if normalize_name(row[i]) == target:
                return row.pop(i)
        raise NotFound(f"Item not found: {clean(item)!r}")

    def edit_item(self, category: Any, old_item: Any, new_item: Any) -> None:
        """Replaces the first exact match of the trimmed `old_item`."""
        position = self.lookup(category)
        old_value = clean(old_item)
        new_value = clean(new_item)
        if not old_value:
            raise EmptyValue("No item selected.")
        if not new_value:
            raise EmptyValue("New item value is empty.")
        row = self._rows[position]
        for i in range(1, len(row)):
            if row[i] == old_value:
                row[i] = new_value
                return
        raise NotFound(f"Item not found: {old_value!r}")

    def clear_items(self, category: Any) -> int:
        """Truncates the row to `[name]`; returns how many items were dropped."""
        position = self.lookup(category)
        dropped = len(self._rows[position]) - 1
        self._rows[position] = [self._rows[position][0]]
        return dropped
