# tests/test_debian_index.py
"""Tests for the Debian Packages reader."""

from os_curation_tool.index import MalformedRecord, parse_index
from os_curation_tool.index.debian import iter_debian_records, split_relations
from os_curation_tool.models import Ecosystem, PackageInfo


class TestSplitRelations:
    def test_alternatives_stay_together(self):
        assert split_relations("openssl (>= 1.1.1), debconf (>= 0.5) | debconf-2.0") == [
            "openssl (>= 1.1.1)",
            "debconf (>= 0.5) | debconf-2.0",
        ]

    def test_folded_lines_are_normalized(self):
        assert split_relations("a,\n b  (>= 1),\n c") == ["a", "b (>= 1)", "c"]

    def test_empty(self):
        assert split_relations("") == []


class TestDebianRecords:
    def test_records_in_file_order(self, debian_index):
        items = list(iter_debian_records(debian_index))
        assert len(items) == 6
        assert isinstance(items[3], MalformedRecord)
        assert items[3].ordinal == 3
        assert "Package" in items[3].reason

    def test_missing_architecture_is_malformed(self, tmp_path):
        path = tmp_path / "Packages"
        path.write_text("Package: foo\nVersion: 1.0\n")
        (item,) = iter_debian_records(path)
        assert isinstance(item, MalformedRecord)
        assert item.name == "foo"


class TestParseDebianIndex:
    def test_packages_and_skip_count(self, debian_index):
        index = parse_index(debian_index, Ecosystem.DEBIAN)
        assert [(p.name, p.architecture) for p in index.packages] == [
            ("openssh-server", "amd64"),
            ("ca-certificates", "all"),
            ("systemd", "amd64"),
            ("systemd", "arm64"),
        ]
        assert index.skipped_records == 1
        assert index.source == debian_index

    def test_openssh_server_fields(self, debian_index):
        openssh = parse_index(debian_index, "deb").packages[0]
        assert openssh.version == "1:9.2p1-2+deb12u3"
        assert openssh.dependencies == (
            "init-system-helpers (>= 1.54~)",
            "adduser",
            "libssl3 (>= 3.0.0)",
            "openssh-client (= 1:9.2p1-2+deb12u3)",
            "procps",
            "ucf",
            "runit-helper (>= 2.14.0~)",
        )
        assert openssh.location == "pool/main/o/openssh/openssh-server_9.2p1-2+deb12u3_amd64.deb"
        assert openssh.checksum.startswith("sha256:0c5a6d0f")
        assert openssh.description.startswith("secure shell (SSH) server")

    def test_alternative_dependencies(self, debian_index):
        ca = parse_index(debian_index, Ecosystem.DEBIAN).packages[1]
        assert ca.dependencies == ("openssl (>= 1.1.1)", "debconf (>= 0.5) | debconf-2.0")
        assert ca.checksum is None
        assert ca.is_wildcard_arch

    def test_later_duplicate_wins(self, debian_index):
        systemd = parse_index(debian_index, Ecosystem.DEBIAN).by_name()["systemd"]
        assert [(p.architecture, p.version) for p in systemd] == [
            ("amd64", "252.33-1~deb12u1"),
            ("arm64", "252.33-1~deb12u1"),
        ]

    def test_matches_arch_aliases(self):
        pkg = PackageInfo("systemd", "1", "amd64")
        assert pkg.matches_arch("x86_64")
        assert pkg.matches_arch(None)
        assert not pkg.matches_arch("aarch64")
