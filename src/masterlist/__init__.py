"""Personal category/item catalog with autosave and versioned export."""

__version__ = "0.1.0"
