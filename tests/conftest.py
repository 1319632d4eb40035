# tests/conftest.py
"""
Shared fixtures for the os_curation_tool test suite.

Provides:
    - Paths to the documents and index files under tests/testdata
    - Fake download/decompress collaborators that record their calls
    - A CurationConfig pointing scratch directories at tmp_path
"""

import gzip
import logging
import shutil
from pathlib import Path
from typing import List, Optional

import pytest

from os_curation_tool.config import CurationConfig

TESTDATA_DIR = Path(__file__).parent / "testdata"


@pytest.fixture(autouse=True)
def _restore_root_logging():
    """The CLI reconfigures root handlers; put them back after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def testdata_dir() -> Path:
    return TESTDATA_DIR


@pytest.fixture
def debian_index(tmp_path) -> Path:
    """Plain-text copy of the sample Debian Packages index."""
    target = tmp_path / "Packages"
    shutil.copy(TESTDATA_DIR / "Packages", target)
    return target


@pytest.fixture
def rpm_index(tmp_path) -> Path:
    """Plain-text copy of the sample RPM primary.xml."""
    target = tmp_path / "primary.xml"
    shutil.copy(TESTDATA_DIR / "primary.xml", target)
    return target


@pytest.fixture
def gzipped(tmp_path):
    """Factory gzip-compressing a testdata file into tmp_path."""

    def _make(rel_path: str, name: Optional[str] = None) -> Path:
        source = TESTDATA_DIR / rel_path
        target = tmp_path / (name or f"{source.name}.gz")
        with open(source, "rb") as src, gzip.open(target, "wb") as dst:
            shutil.copyfileobj(src, dst)
        return target

    return _make


@pytest.fixture
def curation_config(tmp_path) -> CurationConfig:
    return CurationConfig(temp_dir=str(tmp_path / "scratch"), download_timeout=5.0)


class FakeDownloader:
    """Copies a prepared file into the scratch directory instead of fetching."""

    def __init__(self, files: Optional[List[Path]] = None, error: Optional[Exception] = None):
        self.files = files or []
        self.error = error
        self.calls = []

    def download(self, url, dest_dir, cancel=None, auth=None):
        self.calls.append({"url": url, "dest_dir": Path(dest_dir), "auth": auth})
        if self.error is not None:
            raise self.error
        results = []
        for source in self.files:
            target = Path(dest_dir) / source.name
            shutil.copy(source, target)
            results.append(target)
        return results


class FakeDecompressor:
    """Returns preset paths (or passes the input through) and records calls."""

    def __init__(self, outputs: Optional[List[Path]] = None, error: Optional[Exception] = None):
        self.outputs = outputs
        self.error = error
        self.calls = []

    def decompress(self, path):
        self.calls.append(Path(path))
        if self.error is not None:
            raise self.error
        if self.outputs is None:
            return [Path(path)]
        return list(self.outputs)


@pytest.fixture
def fake_downloader_cls():
    return FakeDownloader


@pytest.fixture
def fake_decompressor_cls():
    return FakeDecompressor
