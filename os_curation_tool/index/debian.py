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

"""Reader for Debian ``Packages`` control-stanza indices."""

import logging
from pathlib import Path
from typing import Iterator, List, Union

from debian import deb822

from ..models.package import PackageInfo
from .records import MalformedRecord

logger = logging.getLogger(__name__)

# Relationship fields kept as raw dependency expressions, in this order.
DEPENDENCY_FIELDS = ("Pre-Depends", "Depends")


def split_relations(value: str) -> List[str]:
    """Split a relationship field into expressions, keeping ``a | b`` alternatives whole."""
    return [" ".join(part.split()) for part in value.split(",") if part.strip()]


def _paragraph_to_package(paragraph: deb822.Packages, ordinal: int) -> Union[PackageInfo, MalformedRecord]:
    name = (paragraph.get("Package") or "").strip()
    version = (paragraph.get("Version") or "").strip()
    architecture = (paragraph.get("Architecture") or "").strip()

    missing = [field for field, value in (("Package", name), ("Version", version), ("Architecture", architecture)) if not value]
    if missing:
        return MalformedRecord(ordinal, f"missing field(s) {', '.join(missing)}", name or None)
    if len(name.split()) != 1:
        return MalformedRecord(ordinal, f"invalid package name '{name}'", name)

    dependencies: List[str] = []
    for field in DEPENDENCY_FIELDS:
        if field in paragraph:
            dependencies.extend(split_relations(paragraph[field]))

    return PackageInfo(
        name=name,
        version=version,
        architecture=architecture,
        dependencies=tuple(dependencies),
        description=paragraph.get("Description"),
        location=paragraph.get("Filename"),
        checksum=f"sha256:{paragraph['SHA256']}" if paragraph.get("SHA256") else None,
    )


def iter_debian_records(path: Path) -> Iterator[Union[PackageInfo, MalformedRecord]]:
    """Stream records from a decompressed ``Packages`` file, one stanza at a time.

    Raises:
        OSError: If the file cannot be opened
    """
    with open(path, "rt", encoding="utf-8", errors="replace") as handle:
        for ordinal, paragraph in enumerate(deb822.Packages.iter_paragraphs(handle, use_apt_pkg=False)):
            yield _paragraph_to_package(paragraph, ordinal)
