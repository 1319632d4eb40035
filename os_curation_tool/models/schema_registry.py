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

"""Versioned JSON Schema registry for curation documents."""

import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from ..exceptions import FormatVersionError, InvalidSchemaError, SchemaNotFoundError
from ..schema import SCHEMA_DIR
from ..utils.format_version import SemanticVersion, check_format_version, parse_format_version
from .document import DocumentKind

logger = logging.getLogger(__name__)


def _load_schema_file(schema_path: Path) -> dict:
    try:
        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)
    except json.JSONDecodeError as e:
        raise InvalidSchemaError(f"Invalid JSON in schema file {schema_path}: {e}", str(schema_path)) from e

    try:
        Draft202012Validator.check_schema(schema)
    except SchemaError as e:
        raise InvalidSchemaError(
            f"Schema file {schema_path} is not a valid JSON Schema: {e.message}", str(schema_path)
        ) from e
    return schema


class SchemaRegistry:
    """Immutable collection of schemas keyed by document kind and version.

    All schema files under ``schema_dir`` are loaded once in the constructor;
    afterwards the registry is read-only and can be shared between threads.
    """

    def __init__(self, schema_dir: Path = SCHEMA_DIR):
        self.schema_dir = Path(schema_dir)
        schemas: Dict[DocumentKind, Dict[SemanticVersion, dict]] = {kind: {} for kind in DocumentKind}
        validators: Dict[Tuple[DocumentKind, SemanticVersion], Draft202012Validator] = {}

        for version_dir in sorted(self.schema_dir.iterdir()):
            if not version_dir.is_dir():
                continue
            try:
                version = parse_format_version(version_dir.name)
            except FormatVersionError:
                # Skip directories that don't match the version pattern
                continue
            for kind in DocumentKind:
                schema_path = version_dir / f"{kind.value}.json"
                if not schema_path.exists():
                    continue
                schema = _load_schema_file(schema_path)
                schemas[kind][version] = schema
                validators[(kind, version)] = Draft202012Validator(schema)
                logger.debug(f"Registered {kind.value} schema {version}: {schema_path}")

        self._schemas: Mapping[DocumentKind, Mapping[SemanticVersion, dict]] = MappingProxyType(
            {kind: MappingProxyType(by_version) for kind, by_version in schemas.items()}
        )
        self._validators = MappingProxyType(validators)

    def versions(self, kind: DocumentKind) -> Tuple[SemanticVersion, ...]:
        """Available schema versions for ``kind``, ascending."""
        return tuple(sorted(self._schemas[kind]))

    def latest_version(self, kind: DocumentKind, major: Optional[int] = None) -> SemanticVersion:
        candidates = [v for v in self.versions(kind) if major is None or v.major == major]
        if not candidates:
            scope = f" with major version {major}" if major is not None else ""
            raise SchemaNotFoundError(f"No {kind.value} schema registered{scope} in {self.schema_dir}")
        return max(candidates)

    def resolve_version(self, kind: DocumentKind, version: Optional[str] = None) -> SemanticVersion:
        """Pick the schema version used to validate a document declaring ``version``.

        Version resolution rules:
        - No version declared: the newest schema of the kind
        - Major version must match exactly
        - If the exact version exists, use it
        - Otherwise the largest patch within the same minor
        - Otherwise the closest larger minor (largest patch within it)
        - Otherwise the largest available version of that major

        Raises:
            FormatVersionError: If the version is unparsable or its major is not shipped
            SchemaNotFoundError: If no schema exists for the kind at all
        """
        newest = self.latest_version(kind)
        if version is None:
            return newest

        parsed_version = parse_format_version(version)
        available_versions = [v for v in self.versions(kind) if v.major == parsed_version.major]
        if not available_versions:
            raise FormatVersionError(check_format_version(version, newest).message)

        if parsed_version in available_versions:
            return parsed_version

        same_minor_versions = [v for v in available_versions if v.minor == parsed_version.minor]
        if same_minor_versions:
            return max(same_minor_versions)

        larger_minor_versions = [v for v in available_versions if v.minor > parsed_version.minor]
        if larger_minor_versions:
            min_larger_minor = min(v.minor for v in larger_minor_versions)
            return max(v for v in larger_minor_versions if v.minor == min_larger_minor)

        largest_version = max(available_versions)
        result = check_format_version(version, largest_version)
        if result.minor_newer:
            logger.warning(result.message)
        return largest_version

    def schema_for(self, kind: DocumentKind, version: Optional[str] = None) -> dict:
        """Return the schema dictionary for ``kind`` (and declared ``version``)."""
        resolved = self.resolve_version(kind, version)
        return self._schemas[kind][resolved]

    def validator_for(self, kind: DocumentKind, version: Optional[str] = None) -> Tuple[SemanticVersion, Draft202012Validator]:
        """Return the resolved version and its compiled validator."""
        resolved = self.resolve_version(kind, version)
        return resolved, self._validators[(kind, resolved)]


# Process-wide registry, populated once at import
schema_registry = SchemaRegistry()
