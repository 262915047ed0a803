# src/masterlist/catalog/exporter.py
import json
import os
import re
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .errors import CatalogError, ExportError
from .persistence import atomic_write_bytes
from .snapshot import Snapshot

logger = logging.getLogger(__name__)

DEFAULT_BASE_NAME = "MasterListDB.json"
_JSON_SUFFIX = re.compile(r"\.json$", re.IGNORECASE)
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def export_stamp(moment: Optional[datetime] = None) -> str:
    """
    Seconds-resolution UTC stamp for file names: YYYY-MM-DD_HHMMSS.
    Aware moments are converted to UTC; naive ones are taken as UTC already.
    """
    moment = moment or datetime.now(timezone.utc)
    if moment.tzinfo is not None:
        moment = moment.astimezone(timezone.utc)
    return moment.strftime("%Y-%m-%d_%H%M%S")


def _write_new(target: Path, data: bytes) -> None:
    if target.exists():
        raise ExportError(f"Refusing to overwrite existing export {target}")
    atomic_write_bytes(target, data)


def name_export_file(base_name: Optional[str], version: int, timestamp: Optional[datetime] = None) -> str:
    """
    `Foo.json`, v7 -> `Foo_v0007_2025-01-31_140509.json`.
    Distinct across versions, and across exports a second or more apart.
    """
    stem = _JSON_SUFFIX.sub("", base_name or DEFAULT_BASE_NAME)
    stem = _UNSAFE_CHARS.sub("_", stem) or "export"
    return f"{stem}_v{int(version):04d}_{export_stamp(timestamp)}.json"


def serialize(snapshot: Snapshot) -> bytes:
    return json.dumps(snapshot.to_dict(), indent=2, ensure_ascii=False).encode('utf-8')


class ExportSink:
    """
    A place an export can be written to. `available` is probed before each
    export; `write` returns a human-readable location or raises.
    """
    name = "sink"

    @property
    def available(self) -> bool:
        return True

    def write(self, data: bytes, filename: str) -> str:
        raise NotImplementedError


class DownloadSink(ExportSink):
    """Always-available sink: the profile's local exports folder."""
    name = "download"

    def __init__(self, exports_dir: Path):
        self.exports_dir = Path(exports_dir)

    def write(self, data: bytes, filename: str) -> str:
        target = self.exports_dir / filename
        _write_new(target, data)
        return str(target)


class DirectorySink(ExportSink):
    """Optional sink: a user-chosen folder, usable only when it exists and is writable."""
    name = "directory"

    def __init__(self, directory: Optional[Path]):
        self.directory = Path(directory).expanduser() if directory else None

    @property
    def available(self) -> bool:
        return bool(self.directory) and self.directory.is_dir() and os.access(self.directory, os.W_OK)

    def write(self, data: bytes, filename: str) -> str:
        target = self.directory / filename
        _write_new(target, data)
        return str(target)


class S3Sink(ExportSink):
    """Optional sink backed by S3ExportUploader; probed lazily on first use."""
    name = "s3"

    def __init__(self, config=None, uploader=None):
        self._config = config
        self._uploader = uploader
        self._probed = uploader is not None

    def _get_uploader(self):
        if not self._probed:
            # Imported here so boto3 is only touched when S3 export is configured
            from masterlist.utils.s3_uploader import create_s3_uploader
            self._uploader = create_s3_uploader(self._config)
            self._probed = True
        return self._uploader

    @property
    def available(self) -> bool:
        return self._get_uploader() is not None

    def write(self, data: bytes, filename: str) -> str:
        uploader = self._get_uploader()
        if not uploader.upload_bytes(data, filename):
            raise ExportError(f"S3 upload of {filename} failed")
        return f"s3://{uploader.bucket}/{uploader.key_for(filename)}"


def create_optional_sink(config, kind: Optional[str] = None) -> Optional[ExportSink]:
    """Builds the configured optional sink (export.optional_sink): none | directory | s3."""
    kind = (kind or config.get_str("export.optional_sink", "none")).strip().lower()
    if kind in ("", "none"):
        return None
    if kind == "directory":
        directory = config.get("export.directory")
        return DirectorySink(config.resolve(directory) if directory else None)
    if kind == "s3":
        return S3Sink(config=config)
    logger.warning(f"Unknown optional export sink '{kind}'. Using the exports folder only.")
    return None


@dataclass
class ExportResult:
    filename: str
    sink: str
    location: str
    fell_back: bool = False


class Exporter:
    """
    Serializes a snapshot under a versioned name and hands it to a sink.
    The optional sink is tried first when it reports itself available; any
    absence or failure falls back to the always-available sink.
    """

    def __init__(self, fallback_sink: ExportSink, optional_sink: Optional[ExportSink] = None,
                 default_base_name: str = DEFAULT_BASE_NAME):
        self.fallback_sink = fallback_sink
        self.optional_sink = optional_sink
        self.default_base_name = default_base_name

    def export(self, snapshot: Snapshot, base_name: Optional[str] = None,
               timestamp: Optional[datetime] = None) -> ExportResult:
        filename = name_export_file(base_name or self.default_base_name, snapshot.version, timestamp)
        data = serialize(snapshot)

        fell_back = False
        if self.optional_sink is not None:
            try:
                if self.optional_sink.available:
                    location = self.optional_sink.write(data, filename)
                    logger.info(f"Exported {filename} via {self.optional_sink.name}: {location}")
                    return ExportResult(filename, self.optional_sink.name, location)
                logger.info(f"Optional sink '{self.optional_sink.name}' unavailable. Falling back to {self.fallback_sink.name}.")
            except (CatalogError, OSError) as e:
                logger.warning(f"Export via '{self.optional_sink.name}' failed: {e}. Falling back to {self.fallback_sink.name}.")
            fell_back = True

        try:
            location = self.fallback_sink.write(data, filename)
        except (CatalogError, OSError) as e:
            logger.error(f"Export of {filename} failed on every sink: {e}", exc_info=True)
            raise ExportError(f"Export of {filename} failed: {e}") from e

        logger.info(f"Exported {filename} via {self.fallback_sink.name}: {location}")
        return ExportResult(filename, self.fallback_sink.name, location, fell_back)
