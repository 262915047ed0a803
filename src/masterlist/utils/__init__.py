"""Shared helpers: logging setup and S3 export uploads."""
