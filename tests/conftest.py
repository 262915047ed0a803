"""Pytest fixtures for masterlist tests."""

import logging
import textwrap

import pytest

from masterlist.catalog import CatalogSession, Exporter, PersistenceManager
from masterlist.catalog.exporter import DownloadSink
from masterlist.catalog.views import CatalogView
from masterlist.config import ConfigManager
from masterlist.config.manager import PROFILE_ENV_VAR
from masterlist.utils.logging_config import LOG_FORMAT

BASE_CONFIG = """
    active_profile:
    profile:
      name: default
    paths:
      snapshot: data/{profile.name}/db.json
      metadata: data/{profile.name}/meta.json
      exports: data/{profile.name}/exports
      logs: logs/test.log
    persistence:
      autosave_async: false
      flush_timeout_seconds: 2
    export:
      default_base_name: MasterListDB.json
      optional_sink: none
    logging:
      level: WARNING
      file: false
    profiles:
      work:
        description: Work lists
        export:
          optional_sink: directory
"""


class RecordingView(CatalogView):
    """Collects every projection the session pushes."""

    def __init__(self):
        self.categories = []
        self.options = []
        self.statuses = []

    def render_categories(self, rows):
        self.categories.append(rows)

    def render_options(self, names):
        self.options.append(names)

    def render_status(self, text):
        self.statuses.append(text)


def write_config(root, text=BASE_CONFIG, name="default.yaml"):
    configs = root / "configs"
    configs.mkdir(exist_ok=True)
    (configs / name).write_text(textwrap.dedent(text), encoding="utf-8")


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Drops handlers installed by setup_logging() so they do not outlive the test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler.formatter is not None and handler.formatter._fmt == LOG_FORMAT:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def config_root(tmp_path, monkeypatch):
    """A repository root with configs/default.yaml and no profile env override."""
    monkeypatch.delenv(PROFILE_ENV_VAR, raising=False)
    write_config(tmp_path)
    return tmp_path


@pytest.fixture
def config(config_root):
    return ConfigManager(root_dir=config_root)


@pytest.fixture
def persistence(tmp_path):
    """Synchronous persistence so tests can read the slots right after a mutation."""
    return PersistenceManager(
        snapshot_path=tmp_path / "slot" / "db.json",
        metadata_path=tmp_path / "slot" / "meta.json",
        autosave_async=False,
    )


@pytest.fixture
def view():
    return RecordingView()


@pytest.fixture
def session(persistence, tmp_path, view):
    catalog = CatalogSession(persistence, Exporter(DownloadSink(tmp_path / "exports")), views=[view])
    catalog.start()
    yield catalog
    catalog.close()
