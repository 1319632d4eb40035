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

"""Document loading: JSON/YAML bytes to a JSON-compatible tree."""

import json
import logging
import re
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Tuple, Union

import yaml

from ...exceptions import MalformedDocumentError, ValidationError

logger = logging.getLogger(__name__)

SourceMap = Dict[str, Dict[str, int]]

_IDENTIFIER_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class _JsonCompatibleLoader(yaml.SafeLoader):
    """SafeLoader that keeps YAML timestamps as plain strings."""


_JsonCompatibleLoader.yaml_implicit_resolvers = {
    first_char: [(tag, regexp) for tag, regexp in resolvers if tag != "tag:yaml.org,2002:timestamp"]
    for first_char, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}


def format_json_path(tokens: Iterable[Union[str, int]]) -> str:
    """Render path tokens as a JSONPath, e.g. ``$.systemConfigs[0].kernel``."""
    path = "$"
    for token in tokens:
        if isinstance(token, int):
            path += f"[{token}]"
        elif _IDENTIFIER_RE.match(token):
            path += f".{token}"
        else:
            escaped = token.replace("\\", "\\\\").replace("'", "\\'")
            path += f"['{escaped}']"
    return path


def _build_source_map_from_yaml(content: str) -> SourceMap:
    """Map JSONPath strings to 1-based line/column of the YAML node.

    Uses PyYAML's node tree (yaml.compose) so locations can be tracked
    without changing the parsed data shapes.
    """
    source_map: SourceMap = {}

    try:
        root = yaml.compose(content, Loader=_JsonCompatibleLoader)
    except yaml.YAMLError:
        return source_map

    if root is None:
        return source_map

    def _walk(node, tokens: Tuple[Union[str, int], ...]) -> None:
        mark = getattr(node, "start_mark", None)
        if mark is not None:
            # PyYAML uses 0-based line/column
            source_map[format_json_path(tokens)] = {"line": mark.line + 1, "column": mark.column + 1}

        if isinstance(node, yaml.nodes.MappingNode):
            for key_node, value_node in node.value:
                key = getattr(key_node, "value", None)
                if key is None:
                    continue
                _walk(value_node, tokens + (str(key),))
        elif isinstance(node, yaml.nodes.SequenceNode):
            for idx, item_node in enumerate(node.value):
                _walk(item_node, tokens + (idx,))

    _walk(root, ())
    return source_map


def _decode(payload: Union[bytes, str], source: Optional[str]) -> str:
    if isinstance(payload, str):
        return payload
    try:
        return payload.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise MalformedDocumentError(f"Document is not valid UTF-8: {exc}", source) from exc


def _normalize(data: Any, source: Optional[str]) -> Any:
    # Round-trip through JSON so YAML-only values (binary, sets, NaN) are rejected
    # and non-string keys become strings.
    try:
        return json.loads(json.dumps(data, allow_nan=False))
    except (TypeError, ValueError) as exc:
        raise MalformedDocumentError(f"Document is not representable as JSON: {exc}", source) from exc


class DocumentLoader:
    """Deserialize JSON or YAML payloads into plain dict/list/scalar trees."""

    def load(self, payload: Union[bytes, str], *, source: Optional[str] = None, json_only: bool = False) -> Any:
        """Parse ``payload``.

        Args:
            payload: Raw document bytes (or already decoded text)
            source: Document identifier used in error messages
            json_only: Reject YAML syntax (legacy composer documents are JSON)

        Returns:
            JSON-compatible tree; an empty YAML document becomes ``{}``

        Raises:
            MalformedDocumentError: If the payload cannot be parsed
        """
        data, _ = self.load_with_source(payload, source=source, json_only=json_only)
        return data

    def load_with_source(
        self, payload: Union[bytes, str], *, source: Optional[str] = None, json_only: bool = False
    ) -> Tuple[Any, SourceMap]:
        """Parse ``payload`` and return ``(data, source_map)``.

        The source map is empty for JSON input.
        """
        content = _decode(payload, source)

        if not json_only and content.lstrip().startswith(("{", "[")):
            # JSON may be tab-indented, which YAML 1.1 rejects
            try:
                return _normalize(json.loads(content), source), {}
            except json.JSONDecodeError:
                logger.debug(f"{source or '<memory>'} looks like JSON but is not, parsing as YAML")

        if json_only:
            try:
                return json.loads(content), {}
            except json.JSONDecodeError as exc:
                raise MalformedDocumentError(f"Failed to parse JSON: {exc}", source) from exc

        try:
            data = yaml.load(content, Loader=_JsonCompatibleLoader)
        except yaml.YAMLError as exc:
            raise MalformedDocumentError(f"Failed to parse YAML: {exc}", source) from exc

        if data is None:
            data = {}
        return _normalize(data, source), _build_source_map_from_yaml(content)

    def read_file(self, file_path: Union[str, Path]) -> bytes:
        """Read a document from disk.

        Raises:
            ValidationError: If the file is missing or unreadable
        """
        path = Path(file_path)

        if not path.exists():
            raise ValidationError(f"Document file not found: {path}")

        if not path.is_file():
            raise ValidationError(f"Path is not a file: {path}")

        logger.debug(f"Reading document file: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise ValidationError(f"Failed to read document file {path}: {exc}") from exc


# Global loader instance
document_loader = DocumentLoader()
