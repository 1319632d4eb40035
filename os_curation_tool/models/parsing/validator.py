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

"""Schema-driven validation of templates, legacy composer documents and configs."""

from __future__ import annotations

import logging
import re
from abc import ABC
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from ...exceptions import FormatVersionError, SchemaViolationError
from ...utils.format_version import SemanticVersion
from ..document import DocumentKind, detect_document_kind
from ..schema_registry import SchemaRegistry, schema_registry
from .document_loader import DocumentLoader, SourceMap, document_loader, format_json_path

logger = logging.getLogger(__name__)

PathToken = Union[str, int]

_REQUIRED_RE = re.compile(r"""^(?P<q>['"])(?P<name>.*)(?P=q) is a required property$""")


@dataclass(frozen=True)
class SchemaIssue:
    path: str
    message: str
    line: Optional[int] = None
    column: Optional[int] = None

    def __str__(self) -> str:
        location = f" (line {self.line})" if self.line is not None else ""
        return f"{self.path}: {self.message}{location}"


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of validating one document.

    A result is either valid (no issues) or invalid with the complete,
    ordered list of issues found in a single pass.
    """

    kind: DocumentKind
    issues: Tuple[SchemaIssue, ...] = ()
    schema_version: Optional[SemanticVersion] = None
    document: Any = None
    source: Optional[str] = None

    @property
    def valid(self) -> bool:
        return not self.issues

    def raise_for_issues(self) -> None:
        if self.issues:
            raise SchemaViolationError(self.issues, self.source)


SemanticCheck = Callable[[Dict[str, Any]], Iterable[Tuple[Tuple[PathToken, ...], str]]]


def _unique_names_semantics(list_key: str, label: str) -> SemanticCheck:
    def _check(document: Dict[str, Any]) -> Iterable[Tuple[Tuple[PathToken, ...], str]]:
        entries = document.get(list_key)
        if not isinstance(entries, list):
            return []

        issues = []
        seen: Dict[str, int] = {}
        for idx, entry in enumerate(entries):
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                continue
            name = entry["name"]
            if name in seen:
                issues.append(
                    (
                        (list_key, idx, "name"),
                        f"Duplicate {label} name '{name}' (first defined at {format_json_path((list_key, seen[name]))})",
                    )
                )
            else:
                seen[name] = idx
        return issues

    return _check


def _lookup_source(source_map: SourceMap, tokens: Sequence[PathToken]) -> Tuple[Optional[int], Optional[int]]:
    # Missing fields have no node of their own; fall back to the closest parent.
    for end in range(len(tokens), -1, -1):
        loc = source_map.get(format_json_path(tokens[:end]))
        if loc:
            return loc["line"], loc["column"]
    return None, None


class BaseValidator(ABC):
    """Validates one document kind against its schema family."""

    KIND: DocumentKind
    JSON_ONLY: bool = False
    SEMANTIC_CHECKS: Tuple[SemanticCheck, ...] = ()

    def __init__(self, registry: Optional[SchemaRegistry] = None, loader: Optional[DocumentLoader] = None):
        self.registry = registry or schema_registry
        self.loader = loader or document_loader

    @classmethod
    def get_kind(cls) -> DocumentKind:
        kind = getattr(cls, "KIND", None)
        if not isinstance(kind, DocumentKind):
            raise NotImplementedError("Validator must define KIND")
        return kind

    def validate(self, payload: Union[bytes, str], source: Optional[str] = None) -> ValidationResult:
        """Deserialize and validate ``payload``.

        Raises:
            MalformedDocumentError: If the payload is not parseable
        """
        data, source_map = self.loader.load_with_source(payload, source=source, json_only=self.JSON_ONLY)
        return self.validate_data(data, source=source, source_map=source_map)

    def validate_data(
        self, data: Any, source: Optional[str] = None, source_map: Optional[SourceMap] = None
    ) -> ValidationResult:
        """Validate an already deserialized document tree."""
        kind = self.get_kind()
        source_map = source_map or {}
        issues: List[SchemaIssue] = []

        def _add(tokens: Sequence[PathToken], message: str) -> None:
            line, column = _lookup_source(source_map, tokens)
            issues.append(SchemaIssue(format_json_path(tokens), message, line, column))

        if not isinstance(data, dict):
            _add((), "Document root must be a mapping/object")
            return ValidationResult(kind=kind, issues=tuple(issues), document=data, source=source)

        try:
            schema_version, validator = self.registry.validator_for(kind, data.get("schemaVersion"))
        except FormatVersionError as exc:
            _add(("schemaVersion",), str(exc))
            return ValidationResult(kind=kind, issues=tuple(issues), document=data, source=source)

        for error in validator.iter_errors(data):
            tokens: List[PathToken] = list(error.absolute_path)
            message = error.message
            if error.validator == "required":
                match = _REQUIRED_RE.match(error.message)
                if match:
                    tokens.append(match.group("name"))
                    message = f"Missing required field '{match.group('name')}'"
            _add(tokens, message)

        for check in self.SEMANTIC_CHECKS:
            for tokens, message in check(data):
                _add(tokens, message)

        result = ValidationResult(
            kind=kind,
            issues=tuple(issues),
            schema_version=schema_version,
            document=data,
            source=source,
        )
        logger.debug(
            f"Validated {kind.value} document {source or '<memory>'} against schema {schema_version}: "
            f"{len(issues)} issue(s)"
        )
        return result


class ComposerLegacyValidator(BaseValidator):
    """Validator for legacy composer JSON documents."""

    KIND = DocumentKind.COMPOSER_LEGACY
    JSON_ONLY = True


class ImageTemplateValidator(BaseValidator):
    """Validator for image templates."""

    KIND = DocumentKind.IMAGE_TEMPLATE
    SEMANTIC_CHECKS = (_unique_names_semantics("systemConfigs", "system config"),)


class GlobalConfigValidator(BaseValidator):
    """Validator for the global tool configuration."""

    KIND = DocumentKind.GLOBAL_CONFIG
    SEMANTIC_CHECKS = (_unique_names_semantics("repositories", "repository"),)


class ValidatorFactory:
    """Factory for creating validators."""

    _validators = {
        DocumentKind.COMPOSER_LEGACY: ComposerLegacyValidator,
        DocumentKind.IMAGE_TEMPLATE: ImageTemplateValidator,
        DocumentKind.GLOBAL_CONFIG: GlobalConfigValidator,
    }

    @classmethod
    def get_validator(cls, kind: DocumentKind, registry: Optional[SchemaRegistry] = None) -> BaseValidator:
        return cls._validators[kind](registry=registry)


def validate(kind: DocumentKind, payload: Union[bytes, str], source: Optional[str] = None) -> ValidationResult:
    """Validate ``payload`` as a document of ``kind``."""
    return ValidatorFactory.get_validator(kind).validate(payload, source=source)


def validate_document(
    payload: Union[bytes, str],
    kind: Optional[DocumentKind] = None,
    source: Optional[str] = None,
) -> ValidationResult:
    """Validate ``payload``, detecting its kind from top-level fields if not given.

    Raises:
        MalformedDocumentError: If the payload is not parseable
        DocumentKindError: If ``kind`` is None and detection fails
    """
    if kind is None:
        kind = detect_document_kind(document_loader.load(payload, source=source))
        logger.debug(f"Detected document kind '{kind.value}' for {source or '<memory>'}")
    return validate(kind, payload, source=source)
