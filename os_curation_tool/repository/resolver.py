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

"""Package resolution against a single repository index."""

import logging
import re
import shutil
import tempfile
import uuid
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Set, Union
from urllib.parse import urljoin

from ..config import CurationConfig, curation_config
from ..exceptions import DecompressionError, RepositoryFetchError, ValidationError
from ..index import parse_index
from ..models.document import ImageTemplate, RepositoryConfig
from ..models.package import Ecosystem, PackageInfo, ParsedIndex, ResolutionResult
from .cancellation import CancellationToken
from .fetcher import ArchiveDecompressor, Credentials, Decompressor, Downloader, HttpDownloader

logger = logging.getLogger(__name__)


def build_index_url(repo_base_url: str, index_href: str) -> str:
    """Join an index href onto the repository base URL.

    Absolute hrefs are returned unchanged; a leading slash is treated as
    relative to the repository base rather than the host root.
    """
    repo_prefix = repo_base_url if repo_base_url.endswith("/") else f"{repo_base_url}/"
    if "://" in index_href:
        return index_href
    return urljoin(repo_prefix, index_href.lstrip("/"))


def select_index_file(paths: Sequence[Path]) -> Path:
    """Pick the index file when decompression yields several: smallest path in lexicographic order."""
    ordered = sorted(paths, key=str)
    if len(ordered) > 1:
        logger.debug(f"Decompression produced {len(ordered)} files, using {ordered[0]}")
    return ordered[0]


def match_packages(index: ParsedIndex, requested: Iterable[str], arch: Optional[str] = None) -> ResolutionResult:
    """Exact-name matching of ``requested`` against ``index``.

    Records whose architecture matches ``arch`` exactly are preferred over
    ``noarch``/``all`` records; among equals the last in index order wins.
    """
    by_name = index.by_name()
    resolved: Dict[str, PackageInfo] = {}
    unresolved: Set[str] = set()

    for name in dict.fromkeys(requested):
        candidates = [pkg for pkg in by_name.get(name, ()) if pkg.matches_arch(arch)]
        if not candidates:
            unresolved.add(name)
            continue
        exact = [pkg for pkg in candidates if not pkg.is_wildcard_arch]
        resolved[name] = (exact or candidates)[-1]

    return ResolutionResult(
        resolved=resolved,
        unresolved=frozenset(unresolved),
        skipped_records=index.skipped_records,
        index_file=index.source,
    )


class Resolver:
    """Fetch, decompress, parse and match one repository index per call.

    Calls share no mutable state besides the temp directory root, inside
    which every run gets its own scratch directory, so independent calls
    may run concurrently.
    """

    def __init__(
        self,
        downloader: Optional[Downloader] = None,
        decompressor: Optional[Decompressor] = None,
        config: Optional[CurationConfig] = None,
    ):
        self.config = config or curation_config
        self.downloader = downloader or HttpDownloader(timeout=self.config.download_timeout)
        self.decompressor = decompressor or ArchiveDecompressor()

    def _make_scratch_dir(self, request_id: str) -> Path:
        root = Path(self.config.temp_dir)
        root.mkdir(parents=True, exist_ok=True)
        safe_id = re.sub(r"[^A-Za-z0-9._-]", "_", request_id)
        return Path(tempfile.mkdtemp(prefix=f"resolve-{safe_id}-", dir=root))

    def _fetch(self, url: str, scratch: Path, cancel: Optional[CancellationToken], auth: Optional[Credentials]) -> List[Path]:
        try:
            files = self.downloader.download(url, scratch, cancel=cancel, auth=auth)
        except OSError as exc:
            raise RepositoryFetchError(f"Failed to download repo file {url}: {exc}", url) from exc
        if not files:
            raise RepositoryFetchError(f"No files downloaded from repository URL: {url} (empty result)", url)
        return list(files)

    def _decompress(self, path: Path) -> List[Path]:
        try:
            files = self.decompressor.decompress(path)
        except OSError as exc:
            raise DecompressionError(f"Failed to decompress {path}: {exc}", str(path)) from exc
        if not files:
            raise DecompressionError(f"Decompression of {path} produced no files", str(path))
        return list(files)

    def resolve(
        self,
        repo_base_url: str,
        index_href: str,
        requested: Iterable[str],
        *,
        ecosystem: Union[Ecosystem, str],
        arch: Optional[str] = None,
        cancel: Optional[CancellationToken] = None,
        request_id: Optional[str] = None,
        auth: Optional[Credentials] = None,
    ) -> ResolutionResult:
        """Resolve ``requested`` package names against one repository index.

        Args:
            repo_base_url: Base URL of the repository
            index_href: Compressed index location, relative to the base URL
            requested: Package names to look up (exact match)
            ecosystem: Index format of the repository
            arch: Target architecture; None accepts every architecture
            cancel: Optional cancellation/deadline token
            request_id: Identifier used for the scratch directory and log lines
            auth: Optional basic-auth credentials for the download

        Raises:
            RepositoryFetchError: Download failed or returned no files
            DecompressionError: Decompression failed or returned no files
            ResolutionCancelledError: ``cancel`` tripped during the run
            ValidationError: ``ecosystem`` is not a known index format
            IndexParseError: The index is unreadable or has no records
        """
        if not isinstance(ecosystem, Ecosystem):
            try:
                ecosystem = Ecosystem.from_name(ecosystem)
            except ValueError as exc:
                raise ValidationError(str(exc)) from exc

        request_id = request_id or uuid.uuid4().hex[:12]
        requested = list(requested)
        url = build_index_url(repo_base_url, index_href)
        scratch = self._make_scratch_dir(request_id)

        try:
            logger.info(f"[{request_id}] Fetching index {url}")
            downloaded = self._fetch(url, scratch, cancel, auth)

            if cancel is not None:
                cancel.raise_if_cancelled()
            decompressed = self._decompress(select_index_file(downloaded))

            if cancel is not None:
                cancel.raise_if_cancelled()
            index = parse_index(select_index_file(decompressed), ecosystem)

            result = match_packages(index, requested, arch)
            logger.info(
                f"[{request_id}] Resolved {len(result.resolved)}/{len(set(requested))} package(s)"
                + (f", unresolved: {', '.join(sorted(result.unresolved))}" if result.unresolved else "")
            )
            return result
        finally:
            if self.config.keep_scratch:
                logger.debug(f"[{request_id}] Keeping scratch directory {scratch}")
            else:
                shutil.rmtree(scratch, ignore_errors=True)

    def resolve_template(
        self,
        template: ImageTemplate,
        repository: RepositoryConfig,
        *,
        cancel: Optional[CancellationToken] = None,
        request_id: Optional[str] = None,
    ) -> ResolutionResult:
        """Resolve every package of every system config in ``template``."""
        return self.resolve(
            repository.url,
            repository.index_href,
            template.package_names(),
            ecosystem=repository.ecosystem,
            arch=template.arch,
            cancel=cancel,
            request_id=request_id or f"{template.name}-{uuid.uuid4().hex[:8]}",
            auth=repository.credentials(),
        )
