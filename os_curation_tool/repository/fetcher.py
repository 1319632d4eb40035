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

"""Download and decompression collaborators for repository indices."""

import bz2
import gzip
import logging
import lzma
import shutil
import tarfile
from pathlib import Path
from typing import List, Optional, Protocol, Tuple
from urllib.parse import unquote, urlparse
from urllib.request import url2pathname

import httpx

from ..exceptions import DecompressionError, RepositoryFetchError, ResolutionCancelledError
from .cancellation import CancellationToken

logger = logging.getLogger(__name__)

Credentials = Tuple[str, str]


class Downloader(Protocol):
    def download(
        self,
        url: str,
        dest_dir: Path,
        cancel: Optional[CancellationToken] = None,
        auth: Optional[Credentials] = None,
    ) -> List[Path]:
        """Fetch ``url`` into ``dest_dir`` and return the local file paths."""
        ...


class Decompressor(Protocol):
    def decompress(self, path: Path) -> List[Path]:
        """Decompress ``path`` and return the resulting file paths."""
        ...


def _target_path(url: str, dest_dir: Path) -> Path:
    name = Path(unquote(urlparse(url).path)).name or "index"
    return dest_dir / name


class HttpDownloader:
    """Streamed HTTP(S) downloader; ``file://`` URLs are copied from disk.

    The cancellation token is checked between chunks, and the request timeout
    is capped by the token's remaining time so a stalled read cannot outlive
    the caller's deadline.

    A manual :meth:`CancellationToken.cancel` is only observed when the next
    chunk arrives: while a read is stalled the download keeps waiting until
    the request timeout (``timeout``, or the token's remaining time if
    shorter) expires. Lower ``timeout`` where prompt cancellation matters.
    """

    def __init__(
        self,
        timeout: float = 30.0,
        client: Optional[httpx.Client] = None,
        chunk_size: int = 1 << 16,
    ):
        self.timeout = timeout
        self.chunk_size = chunk_size
        self._client = client

    def _effective_timeout(self, cancel: Optional[CancellationToken]) -> float:
        remaining = cancel.remaining() if cancel is not None else None
        if remaining is None:
            return self.timeout
        return max(0.001, min(self.timeout, remaining))

    def download(
        self,
        url: str,
        dest_dir: Path,
        cancel: Optional[CancellationToken] = None,
        auth: Optional[Credentials] = None,
    ) -> List[Path]:
        if cancel is not None:
            cancel.raise_if_cancelled("download")

        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)
        output_path = _target_path(url, dest_dir)

        try:
            if urlparse(url).scheme == "file":
                self._copy_local(url, output_path, cancel)
            else:
                self._fetch_http(url, output_path, cancel, auth)
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise

        logger.debug(f"Downloaded {url} to {output_path}")
        return [output_path]

    def _copy_local(self, url: str, output_path: Path, cancel: Optional[CancellationToken]) -> None:
        source = Path(url2pathname(urlparse(url).path))
        try:
            with open(source, "rb") as src, open(output_path, "wb") as dst:
                while chunk := src.read(self.chunk_size):
                    if cancel is not None:
                        cancel.raise_if_cancelled("download")
                    dst.write(chunk)
        except OSError as e:
            raise RepositoryFetchError(f"Failed to copy {url}: {e}", url) from e

    def _fetch_http(
        self,
        url: str,
        output_path: Path,
        cancel: Optional[CancellationToken],
        auth: Optional[Credentials],
    ) -> None:
        client = self._client or httpx.Client(follow_redirects=True)
        try:
            with client.stream("GET", url, auth=auth, timeout=self._effective_timeout(cancel)) as response:
                response.raise_for_status()
                with open(output_path, "wb") as f:
                    for chunk in response.iter_bytes(self.chunk_size):
                        if cancel is not None:
                            cancel.raise_if_cancelled("download")
                        f.write(chunk)
        except httpx.HTTPStatusError as e:
            raise RepositoryFetchError(f"Failed to download {url}: {e}", url) from e
        except httpx.TimeoutException as e:
            if cancel is not None and cancel.cancelled:
                raise ResolutionCancelledError(f"download of {url} exceeded its deadline") from e
            raise RepositoryFetchError(f"Timed out downloading {url}: {e}", url) from e
        except httpx.HTTPError as e:
            raise RepositoryFetchError(f"Failed to download {url}: {e}", url) from e
        except OSError as e:
            raise RepositoryFetchError(f"Failed to write {output_path}: {e}", url) from e
        finally:
            if self._client is None:
                client.close()


_STREAM_OPENERS = {
    "gzip": gzip.open,
    "xz": lzma.open,
    "bzip2": bz2.open,
}

_MAGIC_NUMBERS = (
    (b"\x1f\x8b", "gzip"),
    (b"\xfd7zXZ\x00", "xz"),
    (b"BZh", "bzip2"),
    (b"\x28\xb5\x2f\xfd", "zstd"),
)

_SUFFIX_FORMATS = {".gz": "gzip", ".xz": "xz", ".bz2": "bzip2", ".zst": "zstd", ".zstd": "zstd"}

_TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2")


def sniff_compression(path: Path) -> Optional[str]:
    """Name of the compression format announced by the file's magic bytes, if any."""
    with open(path, "rb") as f:
        head = f.read(8)
    for magic, fmt in _MAGIC_NUMBERS:
        if head.startswith(magic):
            return fmt
    return None


class ArchiveDecompressor:
    """Decompress single-file streams (gzip/xz/bzip2) and tar archives.

    The stream format is taken from the magic bytes, falling back to the
    suffix, so a mislabelled file is still decompressed. Recognised formats
    that cannot be decoded (zstd) raise :class:`DecompressionError`; files
    that are neither compressed nor carry a compression suffix are returned
    unchanged. Tar members are extracted into ``<archive>.d/`` (regular files
    only) and returned in lexicographic path order.
    """

    def __init__(self, chunk_size: int = 1 << 20):
        self.chunk_size = chunk_size

    def decompress(self, path: Path) -> List[Path]:
        path = Path(path)
        if not path.is_file():
            raise DecompressionError(f"Compressed file not found: {path}", str(path))

        name = path.name.lower()
        if name.endswith(_TAR_SUFFIXES):
            return self._extract_tar(path)

        suffix = path.suffix.lower()
        try:
            fmt = sniff_compression(path) or _SUFFIX_FORMATS.get(suffix)
        except OSError as e:
            raise DecompressionError(f"Failed to read {path}: {e}", str(path)) from e

        if fmt is None:
            logger.debug(f"{path} is not compressed, using it as is")
            return [path]

        opener = _STREAM_OPENERS.get(fmt)
        if opener is None:
            raise DecompressionError(f"Unsupported {fmt} compression in {path}", str(path))

        output_path = path.with_suffix("") if suffix in _SUFFIX_FORMATS else path.with_name(f"{path.name}.out")
        try:
            with opener(path, "rb") as src, open(output_path, "wb") as dst:
                shutil.copyfileobj(src, dst, self.chunk_size)
        except (OSError, EOFError, lzma.LZMAError) as e:
            output_path.unlink(missing_ok=True)
            raise DecompressionError(f"Failed to decompress {path}: {e}", str(path)) from e

        logger.debug(f"Decompressed {fmt} stream {path} to {output_path}")
        return [output_path]

    def _extract_tar(self, path: Path) -> List[Path]:
        dest_dir = (path.parent / f"{path.name}.d").resolve()
        extracted: List[Path] = []
        try:
            with tarfile.open(path, "r:*") as archive:
                for member in archive:
                    if not member.isfile():
                        continue
                    target = (dest_dir / member.name).resolve()
                    if dest_dir not in target.parents:
                        raise DecompressionError(
                            f"Archive member '{member.name}' escapes the extraction directory", str(path)
                        )
                    target.parent.mkdir(parents=True, exist_ok=True)
                    with archive.extractfile(member) as src, open(target, "wb") as dst:
                        shutil.copyfileobj(src, dst, self.chunk_size)
                    extracted.append(target)
        except (tarfile.TarError, OSError, EOFError, lzma.LZMAError) as e:
            raise DecompressionError(f"Failed to extract {path}: {e}", str(path)) from e

        return sorted(extracted, key=str)
