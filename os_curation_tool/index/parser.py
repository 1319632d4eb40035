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

"""Repository index parsing with per-record skip and duplicate policies."""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable, Dict, Iterator, Tuple, Union

from ..exceptions import IndexParseError
from ..models.package import Ecosystem, PackageInfo, ParsedIndex
from .debian import iter_debian_records
from .records import MalformedRecord
from .rpm import iter_rpm_records

logger = logging.getLogger(__name__)

RecordReader = Callable[[Path], Iterator[Union[PackageInfo, MalformedRecord]]]

_READERS: Dict[Ecosystem, RecordReader] = {
    Ecosystem.DEBIAN: iter_debian_records,
    Ecosystem.RPM: iter_rpm_records,
}


def parse_index(path: Union[str, Path], ecosystem: Union[Ecosystem, str]) -> ParsedIndex:
    """Parse a decompressed repository index into package records.

    The ecosystem is always supplied by the caller and never guessed from
    the file name.

    Policies:
    - Malformed records are skipped, logged, and counted in ``skipped_records``.
    - Duplicate ``(name, architecture)`` pairs: the later record wins and
      takes the slot of the first occurrence; otherwise file order is kept.

    Raises:
        IndexParseError: If the file is unreadable or yields no valid records
    """
    path = Path(path)
    if not isinstance(ecosystem, Ecosystem):
        try:
            ecosystem = Ecosystem.from_name(ecosystem)
        except ValueError as exc:
            raise IndexParseError(str(exc), str(path)) from exc

    if not path.is_file():
        raise IndexParseError(f"Index file not found: {path}", str(path))

    reader = _READERS[ecosystem]
    records: Dict[Tuple[str, str], PackageInfo] = {}
    skipped = 0
    duplicates = 0

    try:
        for item in reader(path):
            if isinstance(item, MalformedRecord):
                skipped += 1
                logger.warning(f"Skipping malformed {ecosystem.value} {item} in {path}")
                continue
            if item.key in records:
                duplicates += 1
                logger.debug(
                    f"Duplicate {item.name} ({item.architecture}) in {path}: "
                    f"{records[item.key].version} replaced by {item.version}"
                )
            records[item.key] = item
    except (OSError, ET.ParseError) as exc:
        raise IndexParseError(f"Failed to read {ecosystem.value} index {path}: {exc}", str(path)) from exc

    if not records:
        raise IndexParseError(
            f"No records found in {ecosystem.value} index {path} ({skipped} malformed record(s) skipped)",
            str(path),
        )

    logger.info(
        f"Parsed {len(records)} package(s) from {path} "
        f"({skipped} skipped, {duplicates} duplicate(s) replaced)"
    )
    return ParsedIndex(packages=tuple(records.values()), skipped_records=skipped, source=path)
