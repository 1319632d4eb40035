from .cancellation import CancellationToken
from .fetcher import ArchiveDecompressor, Decompressor, Downloader, HttpDownloader
from .resolver import Resolver, build_index_url, match_packages, select_index_file
