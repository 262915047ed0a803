# src/masterlist/catalog/views.py
"""Text projections of the catalog and the view interface the session drives."""

from typing import List, Optional

REPORT_SEPARATOR = "============="


class CatalogView:
    """
    Receives plain data after a mutation or load has committed. Subclasses
    override what they display; the defaults ignore the update.
    """

    def render_categories(self, rows: List[List[str]]) -> None:
        pass

    def render_options(self, names: List[str]) -> None:
        pass

    def render_status(self, text: str) -> None:
        pass


def format_status(version: int, updated_at: str, category_count: int,
                  source_file_name: Optional[str] = None, autosave_ok: bool = True) -> str:
    file_part = f"Loaded: {source_file_name}" if source_file_name else "Working set (not imported)"
    autosave = "autosave on" if autosave_ok else "autosave failed"
    return f"{file_part} | v{version} | updated {updated_at} | categories {category_count} | {autosave}"


def format_category_items(row: List[str]) -> str:
    return "\n".join(row[1:])


def format_full_report(rows: List[List[str]]) -> str:
    out = ""
    for row in rows:
        out += f"[{row[0]}]\n"
        out += "\n".join(row[1:]) + "\n"
        out += f"{REPORT_SEPARATOR}\n"
    return out.strip()
