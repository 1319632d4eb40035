# tests/test_index_parser.py
"""Tests for the shared index parsing policies."""

import pytest

from os_curation_tool.exceptions import IndexParseError
from os_curation_tool.index import parse_index
from os_curation_tool.models import Ecosystem


class TestParseIndexErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(IndexParseError, match="not found") as exc_info:
            parse_index(tmp_path / "Packages", Ecosystem.DEBIAN)
        assert exc_info.value.path.endswith("Packages")

    def test_unknown_ecosystem(self, debian_index):
        with pytest.raises(IndexParseError, match="Unknown ecosystem"):
            parse_index(debian_index, "apk")

    def test_empty_debian_file(self, tmp_path):
        path = tmp_path / "Packages"
        path.write_text("")
        with pytest.raises(IndexParseError, match="No records found"):
            parse_index(path, Ecosystem.DEBIAN)

    def test_only_malformed_records(self, tmp_path):
        path = tmp_path / "Packages"
        path.write_text("Version: 1.0\nArchitecture: all\n\nPackage: bar\n")
        with pytest.raises(IndexParseError, match="2 malformed record"):
            parse_index(path, Ecosystem.DEBIAN)

    def test_empty_rpm_metadata(self, tmp_path):
        path = tmp_path / "primary.xml"
        path.write_text('<metadata xmlns="http://linux.duke.edu/metadata/common" packages="0"></metadata>')
        with pytest.raises(IndexParseError, match="No records found"):
            parse_index(path, Ecosystem.RPM)


class TestParseIndexPolicies:
    def test_duplicate_keeps_first_slot(self, tmp_path):
        path = tmp_path / "Packages"
        path.write_text(
            "Package: a\nVersion: 1\nArchitecture: all\n\n"
            "Package: b\nVersion: 1\nArchitecture: all\n\n"
            "Package: a\nVersion: 2\nArchitecture: all\n"
        )
        index = parse_index(path, Ecosystem.DEBIAN)
        assert [(p.name, p.version) for p in index.packages] == [("a", "2"), ("b", "1")]

    def test_same_name_different_arch_is_not_a_duplicate(self, tmp_path):
        path = tmp_path / "Packages"
        path.write_text(
            "Package: a\nVersion: 1\nArchitecture: amd64\n\n"
            "Package: a\nVersion: 1\nArchitecture: arm64\n"
        )
        assert len(parse_index(path, Ecosystem.DEBIAN)) == 2

    def test_malformed_record_logged(self, debian_index, caplog):
        with caplog.at_level("WARNING", logger="os_curation_tool.index.parser"):
            parse_index(debian_index, Ecosystem.DEBIAN)
        assert "Skipping malformed deb record #3" in caplog.text
