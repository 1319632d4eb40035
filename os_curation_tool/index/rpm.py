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

"""Reader for RPM-style ``primary.xml`` metadata."""

import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from ..models.package import PackageInfo
from .records import MalformedRecord

logger = logging.getLogger(__name__)

_FLAG_OPERATORS = {"EQ": "=", "LT": "<", "LE": "<=", "GT": ">", "GE": ">="}


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child(elem: ET.Element, name: str) -> Optional[ET.Element]:
    for child in elem:
        if _local(child.tag) == name:
            return child
    return None


def _text(elem: Optional[ET.Element]) -> str:
    if elem is None or elem.text is None:
        return ""
    return elem.text.strip()


def format_evr(epoch: Optional[str], ver: Optional[str], rel: Optional[str]) -> str:
    """Render ``epoch:version-release``; a missing or zero epoch is omitted."""
    evr = ver or ""
    if rel:
        evr = f"{evr}-{rel}"
    if epoch and epoch != "0":
        evr = f"{epoch}:{evr}"
    return evr


def _entry_expression(attrs: Dict[str, str]) -> Optional[str]:
    name = attrs.get("name")
    if not name:
        return None
    flags = attrs.get("flags")
    if flags not in _FLAG_OPERATORS:
        return name
    return f"{name} {_FLAG_OPERATORS[flags]} {format_evr(attrs.get('epoch'), attrs.get('ver'), attrs.get('rel'))}"


def _requires(format_elem: Optional[ET.Element]) -> List[str]:
    if format_elem is None:
        return []
    requires = _child(format_elem, "requires")
    if requires is None:
        return []
    expressions = []
    for entry in requires:
        expression = _entry_expression(entry.attrib)
        if expression:
            expressions.append(expression)
    return expressions


def _element_to_package(elem: ET.Element, ordinal: int) -> Union[PackageInfo, MalformedRecord]:
    name = _text(_child(elem, "name"))
    architecture = _text(_child(elem, "arch"))
    version_elem = _child(elem, "version")
    ver = version_elem.get("ver") if version_elem is not None else None

    missing = [field for field, value in (("name", name), ("version", ver), ("arch", architecture)) if not value]
    if missing:
        return MalformedRecord(ordinal, f"missing element(s) {', '.join(missing)}", name or None)
    if len(name.split()) != 1:
        return MalformedRecord(ordinal, f"invalid package name '{name}'", name)

    checksum_elem = _child(elem, "checksum")
    checksum = None
    if _text(checksum_elem):
        checksum = f"{checksum_elem.get('type', 'sha256')}:{_text(checksum_elem)}"
    location_elem = _child(elem, "location")

    return PackageInfo(
        name=name,
        version=format_evr(version_elem.get("epoch"), ver, version_elem.get("rel")),
        architecture=architecture,
        dependencies=tuple(_requires(_child(elem, "format"))),
        description=_text(_child(elem, "description")) or _text(_child(elem, "summary")) or None,
        location=location_elem.get("href") if location_elem is not None else None,
        checksum=checksum,
    )


def iter_rpm_records(path: Path) -> Iterator[Union[PackageInfo, MalformedRecord]]:
    """Stream ``<package>`` elements from a decompressed primary.xml.

    Elements are cleared once converted so memory stays bounded by a single
    package.

    Raises:
        OSError: If the file cannot be opened
        xml.etree.ElementTree.ParseError: If the document is not well-formed XML
    """
    ordinal = 0
    for _, elem in ET.iterparse(str(path), events=("end",)):
        if _local(elem.tag) != "package":
            continue
        yield _element_to_package(elem, ordinal)
        ordinal += 1
        elem.clear()
