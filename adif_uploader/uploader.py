"""QSO uploader — sends chunks of ADIF records to the Cloudlog QSO API over HTTP."""

import logging
from typing import Any, Optional
from urllib.parse import urljoin, urlparse

import requests

from adif_uploader import __version__
from adif_uploader.errors import ConfigError, UploadError, UsageError

logger = logging.getLogger(__name__)

API_PATH = "api/qso"
PROJECT_URL = "https://github.com/adif-uploader/adif-uploader"
CONNECT_TIMEOUT_S = 30.0
READ_TIMEOUT_S = 300.0
UPLOAD_METHODS = ("PUT", "POST")


def default_user_agent() -> str:
    major, minor = __version__.split(".")[:2]
    return f"adif-uploader/{major}.{minor} (+{PROJECT_URL})"


def build_api_url(base_url: str) -> str:
    """Join the Cloudlog base URL with the QSO API path.

    Relative-reference resolution applies, so a base without a trailing
    slash loses its last path segment.
    """
    parsed = urlparse(base_url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise UsageError(f"Failed to construct QSO API URL from {base_url!r}: "
                         "expected an http(s) URL with a host")
    if parsed.scheme == "http":
        logger.warning("Base URL %s is not using TLS; API key will be sent in clear text",
                       base_url)
    return urljoin(base_url, API_PATH)


def read_api_key(path: str) -> str:
    """Return the first line of *path*, stripped of surrounding whitespace."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            line = f.readline()
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigError(f"Failed to read API key: {e}") from e
    key = line.strip()
    if not key:
        raise ConfigError(f"Failed to read API key: {path} is empty")
    return key


class UploadStats:
    """Running totals of uploaded chunks and bytes."""

    def __init__(self):
        self.chunks = 0
        self.bytes = 0

    def record(self, nbytes: int):
        self.chunks += 1
        self.bytes += nbytes

    def snapshot(self) -> dict:
        return {"chunks": self.chunks, "bytes": self.bytes}


class QsoUploader:
    """Issues one HTTP request per chunk. Any failure raises UploadError."""

    def __init__(
        self,
        url: str,
        key: str,
        profile_id: Optional[str] = None,
        session: Any = None,
        method: str = "PUT",
        timeout: tuple[float, float] = (CONNECT_TIMEOUT_S, READ_TIMEOUT_S),
        user_agent: Optional[str] = None,
    ):
        method = method.upper()
        if method not in UPLOAD_METHODS:
            raise UsageError(f"Unsupported upload method {method!r}")
        self._url = url
        self._key = key
        self._profile_id = profile_id
        self._method = method
        self._timeout = timeout
        self._session: Any = session or requests.Session()
        self._session.headers["User-Agent"] = user_agent or default_user_agent()
        self.stats = UploadStats()

    @property
    def url(self) -> str:
        return self._url

    def build_payload(self, chunk: str) -> dict:
        payload = {"key": self._key, "type": "adif", "string": chunk}
        if self._profile_id:
            payload["station_profile_id"] = self._profile_id
        return payload

    def send(self, chunk: str) -> int:
        """Upload *chunk* and return its size in bytes."""
        try:
            response = self._session.request(
                self._method,
                self._url,
                json=self.build_payload(chunk),
                timeout=self._timeout,
                allow_redirects=False,
            )
            response.raise_for_status()
        except requests.RequestException as e:
            raise UploadError(f"Failed to upload log records: {e}") from e

        # a redirect would replay the upload as a GET and drop the records
        if not 200 <= response.status_code < 300:
            raise UploadError(
                f"Failed to upload log records: unexpected HTTP status {response.status_code}"
            )

        nbytes = len(chunk.encode("utf-8"))
        self.stats.record(nbytes)
        logger.debug("Uploaded %d bytes of log data.", nbytes)
        return nbytes

    def close(self):
        self._session.close()
