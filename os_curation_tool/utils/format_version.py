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

"""Schema version handling for curation documents.

Templates, legacy composer documents and global configs may pin the schema
they were written against with a top-level ``schemaVersion`` (``1.1.0``).
Only the major component decides compatibility; a newer minor is accepted
with a warning and the patch component is informational.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional

from ..exceptions import FormatVersionError

_VERSION_PATTERN = re.compile(r"v?(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)")


@dataclass(frozen=True, order=True)
class SemanticVersion:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, raw: str) -> SemanticVersion:
        if not isinstance(raw, str):
            raise FormatVersionError(f"schemaVersion must be a string, got {type(raw).__name__} {raw!r}")
        match = _VERSION_PATTERN.fullmatch(raw.strip())
        if match is None:
            raise FormatVersionError(f"Invalid schemaVersion '{raw}', expected MAJOR.MINOR.PATCH such as 1.0.0")
        return cls(int(match["major"]), int(match["minor"]), int(match["patch"]))

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def parse_format_version(raw: str) -> SemanticVersion:
    """Parse ``1.0.0`` or ``v1.0.0``.

    Raises:
        FormatVersionError: If ``raw`` is not a MAJOR.MINOR.PATCH string
    """
    return SemanticVersion.parse(raw)


@dataclass(frozen=True)
class VersionCheckResult:
    compatible: bool
    message: str
    file_version: Optional[SemanticVersion] = None
    supported_version: Optional[SemanticVersion] = None
    minor_newer: bool = False


def check_format_version(raw_version: Optional[str], supported: SemanticVersion) -> VersionCheckResult:
    """Compare a declared ``schemaVersion`` with the newest shipped ``supported`` one.

    An undeclared version is compatible and validated against ``supported``.
    An unparsable version or a different major is incompatible.
    """
    if raw_version is None:
        return VersionCheckResult(True, f"No schemaVersion declared, using schema {supported}", None, supported)

    try:
        declared = SemanticVersion.parse(raw_version)
    except FormatVersionError as exc:
        return VersionCheckResult(False, str(exc), None, supported)

    if declared.major != supported.major:
        message = (
            f"Incompatible schemaVersion {declared}: this tool ships major version "
            f"{supported.major} (newest {supported})"
        )
        return VersionCheckResult(False, message, declared, supported)

    if declared.minor > supported.minor:
        message = (
            f"schemaVersion {declared} is newer than the newest shipped schema {supported}; "
            f"fields added after {supported} will be reported as unknown"
        )
        return VersionCheckResult(True, message, declared, supported, minor_newer=True)

    return VersionCheckResult(True, f"schemaVersion {declared} is compatible with {supported}", declared, supported)
