# Copyright 2025 TIER IV, inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Package records and resolution results."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping, Optional, Tuple

from ..exceptions import UnresolvedPackagesError


class Ecosystem(str, Enum):
    """Packaging format family of a repository index."""

    DEBIAN = "deb"
    RPM = "rpm"

    @classmethod
    def from_name(cls, name: str) -> "Ecosystem":
        aliases = {"deb": cls.DEBIAN, "debian": cls.DEBIAN, "rpm": cls.RPM}
        try:
            return aliases[str(name).lower()]
        except KeyError:
            raise ValueError(
                f"Unknown ecosystem '{name}'. Valid ecosystems: {[e.value for e in cls]}"
            ) from None


# Architectures that install on any target.
WILDCARD_ARCHITECTURES = frozenset({"noarch", "all", "any"})

# Debian and RPM spell the same machine differently.
_ARCH_ALIASES = {
    "x86_64": "x86_64",
    "amd64": "x86_64",
    "aarch64": "aarch64",
    "arm64": "aarch64",
}


def canonical_arch(arch: str) -> str:
    return _ARCH_ALIASES.get(arch, arch)


@dataclass(frozen=True)
class PackageInfo:
    """One entry of a repository index."""

    name: str
    version: str
    architecture: str
    dependencies: Tuple[str, ...] = ()
    description: Optional[str] = None
    location: Optional[str] = None
    checksum: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        return self.name, self.architecture

    @property
    def is_wildcard_arch(self) -> bool:
        return self.architecture in WILDCARD_ARCHITECTURES

    def matches_arch(self, arch: Optional[str]) -> bool:
        """True if this record installs on ``arch`` (``None`` accepts any)."""
        if arch is None or self.is_wildcard_arch:
            return True
        return canonical_arch(self.architecture) == canonical_arch(arch)


@dataclass(frozen=True)
class ParsedIndex:
    """Records parsed from one index file plus parse diagnostics."""

    packages: Tuple[PackageInfo, ...]
    skipped_records: int = 0
    source: Optional[Path] = None

    def __len__(self) -> int:
        return len(self.packages)

    def by_name(self) -> Dict[str, Tuple[PackageInfo, ...]]:
        """Group records by package name, keeping file order inside each group."""
        grouped: Dict[str, list] = {}
        for pkg in self.packages:
            grouped.setdefault(pkg.name, []).append(pkg)
        return {name: tuple(pkgs) for name, pkgs in grouped.items()}


@dataclass(frozen=True)
class ResolutionResult:
    """Outcome of matching requested names against one index.

    ``unresolved`` is a normal outcome; callers decide whether it blocks the
    build (see :meth:`raise_for_unresolved`).
    """

    resolved: Mapping[str, PackageInfo] = field(default_factory=dict)
    unresolved: FrozenSet[str] = frozenset()
    skipped_records: int = 0
    index_file: Optional[Path] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "resolved", MappingProxyType(dict(self.resolved)))
        object.__setattr__(self, "unresolved", frozenset(self.unresolved))

    @property
    def complete(self) -> bool:
        return not self.unresolved

    def raise_for_unresolved(self) -> None:
        if self.unresolved:
            raise UnresolvedPackagesError(self.unresolved)
