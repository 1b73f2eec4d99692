"""Turn generated media into locally usable references."""

from __future__ import annotations

import asyncio
import base64
import logging
import mimetypes
import shutil
import tempfile
import uuid
from http.client import HTTPException
from pathlib import Path
from typing import Awaitable, Callable
from urllib.error import HTTPError, URLError
from urllib.parse import quote
from urllib.request import Request, urlopen

from .errors import DownloadFailedError
from .utils import redact_url

logger = logging.getLogger(__name__)

BLOB_SCHEME = "blob:"
DATA_URI_PREFIX = "data:image/png;base64,"
DOWNLOAD_TIMEOUT_S = 300.0

VideoMaterializer = Callable[[str, str, "BlobStore"], Awaitable[str]]


def materialize_image(inline_base64: str | bytes) -> str:
    if isinstance(inline_base64, (bytes, bytearray)):
        inline_base64 = bytes(inline_base64).decode("ascii")
    return f"{DATA_URI_PREFIX}{inline_base64}"


def decode_data_uri(uri: str) -> tuple[str, bytes]:
    header, sep, payload = str(uri or "").partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise ValueError("Not a base64 data URI.")
    mime_type = header[5:].split(";", 1)[0] or "application/octet-stream"
    return mime_type, base64.b64decode(payload)


def with_key_param(uri: str, credential: str) -> str:
    separator = "&" if "?" in uri else "?"
    return f"{uri}{separator}key={quote(credential, safe='')}"


class BlobStore:
    """Directory-backed store for transient blobs.

    References look like ``blob:<id>``. Callers release references they no longer
    display; a store created without a root uses a temporary directory that is
    removed on :meth:`close`.
    """

    def __init__(self, root: Path | None = None) -> None:
        self._owns_root = root is None
        self.root = Path(tempfile.mkdtemp(prefix="meshwire-blobs-")) if root is None else Path(root)
        self.root.mkdir(parents=True, exist_ok=True)

    def put(self, data: bytes, mime_type: str = "application/octet-stream") -> str:
        blob_id = uuid.uuid4().hex
        ext = mimetypes.guess_extension(mime_type) or ".bin"
        (self.root / f"{blob_id}{ext}").write_bytes(data)
        return f"{BLOB_SCHEME}{blob_id}"

    def path_for(self, ref: str) -> Path | None:
        blob_id = _blob_id(ref)
        if not blob_id:
            return None
        matches = sorted(self.root.glob(f"{blob_id}.*"))
        return matches[0] if matches else None

    def read(self, ref: str) -> bytes:
        path = self.path_for(ref)
        if path is None:
            raise KeyError(ref)
        return path.read_bytes()

    def release(self, ref: str) -> bool:
        path = self.path_for(ref)
        if path is None:
            return False
        path.unlink(missing_ok=True)
        return True

    def close(self) -> None:
        if self._owns_root:
            shutil.rmtree(self.root, ignore_errors=True)

    def __enter__(self) -> "BlobStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


def _blob_id(ref: str) -> str | None:
    text = str(ref or "")
    if not text.startswith(BLOB_SCHEME):
        return None
    blob_id = text[len(BLOB_SCHEME):]
    if not blob_id or not blob_id.isalnum():
        return None
    return blob_id


async def materialize_video(download_uri: str, credential: str, blobs: BlobStore) -> str:
    url = with_key_param(download_uri, credential)
    logger.debug("Downloading video from %s", redact_url(url))
    status, data = await asyncio.to_thread(_http_get, url, DOWNLOAD_TIMEOUT_S)
    if status < 200 or status >= 300:
        raise DownloadFailedError(f"Video download failed with status: {status}", status=status)
    return blobs.put(data, "video/mp4")


def _http_get(url: str, timeout_s: float) -> tuple[int, bytes]:
    req = Request(url, method="GET")
    try:
        with urlopen(req, timeout=timeout_s) as response:
            return int(getattr(response, "status", 200)), response.read()
    except HTTPError as exc:
        return int(exc.code), b""
    except URLError as exc:
        raise DownloadFailedError(f"Video download failed: {exc.reason}") from exc
    except (OSError, HTTPException) as exc:
        raise DownloadFailedError(f"Video download failed: {exc}") from exc
