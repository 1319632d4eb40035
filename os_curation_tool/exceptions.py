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

"""Custom exceptions for the OS curation tool."""

from typing import Iterable, Optional, Sequence


class CurationError(Exception):
    """Base exception for curation related errors."""
    pass


class ValidationError(CurationError):
    """Exception raised for validation errors."""
    pass


class MalformedDocumentError(ValidationError):
    """Raised when a payload cannot be deserialized as JSON or YAML."""

    def __init__(self, message: str, source: Optional[str] = None):
        self.source = source
        if source:
            message = f"{message} (source: {source})"
        super().__init__(message)


class SchemaViolationError(ValidationError):
    """Raised when a parsed document fails one or more schema rules.

    The full list of issues is kept on ``issues`` so callers can report
    every defect at once.
    """

    def __init__(self, issues: Sequence, source: Optional[str] = None):
        self.issues = tuple(issues)
        self.source = source
        where = f" for {source}" if source else ""
        details = "\n".join(f"  - {issue}" for issue in self.issues)
        super().__init__(f"Schema validation failed{where}:\n{details}")


class SchemaNotFoundError(ValidationError):
    """Raised when no schema is registered for a document kind/version."""
    pass


class InvalidSchemaError(ValidationError):
    """Raised when a shipped schema file is not valid JSON or not a valid JSON Schema."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class FormatVersionError(ValidationError):
    """Exception raised when a document's schema version is incompatible."""
    pass


class DocumentKindError(ValidationError):
    """Raised when the kind of a document cannot be determined."""
    pass


class RepositoryError(CurationError):
    """Base exception for repository metadata retrieval errors."""
    pass


class RepositoryFetchError(RepositoryError):
    """Raised when the index download fails or yields no files."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class DecompressionError(RepositoryError):
    """Raised when a downloaded index cannot be decompressed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class ResolutionCancelledError(RepositoryError):
    """Raised when a resolution run is cancelled or its deadline passes."""
    pass


class IndexParseError(CurationError):
    """Raised when a repository index is unreadable or holds no records."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(message)


class UnresolvedPackagesError(CurationError):
    """Raised on request when some packages have no match in the index."""

    def __init__(self, names: Iterable[str]):
        self.names = tuple(sorted(names))
        super().__init__(f"Unresolved packages: {', '.join(self.names)}")
