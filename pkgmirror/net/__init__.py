"""Network layer: HTTP client and artifact downloader.

- HTTP client protocol, urllib implementation, mock (http.py)
- Redirect-following streaming downloader (download.py)
"""

from pkgmirror.net.download import (
    MAX_REDIRECTS,
    DownloadError,
    DownloadFailed,
    DownloadFailure,
    Downloader,
    RedirectMissingLocation,
    ScratchFile,
    TooManyRedirects,
)
from pkgmirror.net.http import (
    HttpClient,
    HttpError,
    HttpStream,
    MockHttpClient,
    MockStream,
    RealHttpClient,
)

__all__ = [
    # HTTP
    "HttpClient",
    "HttpError",
    "HttpStream",
    "MockHttpClient",
    "MockStream",
    "RealHttpClient",
    # Download
    "MAX_REDIRECTS",
    "DownloadError",
    "DownloadFailed",
    "DownloadFailure",
    "Downloader",
    "RedirectMissingLocation",
    "ScratchFile",
    "TooManyRedirects",
]
