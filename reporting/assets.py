"""
Image asset resolution.

Turns an image reference (data URL, http(s) URL or local path) into raw
image bytes the PDF writer can embed. Resolution failures are reported as
None, which the gallery draws as a placeholder tile.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import logging
from pathlib import Path
from typing import Optional, Protocol

import requests

logger = logging.getLogger(__name__)


USER_AGENT = "OpenBeit-ReportEngine/1.0"

EMBEDDABLE_CONTENT_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/gif")


class ImageResolver(Protocol):
    """Anything that can turn an image URL into embeddable bytes."""

    async def to_embeddable(self, url: str) -> Optional[bytes]:
        ...


def decode_data_url(url: str) -> Optional[bytes]:
    """
    Decode a base64 ``data:`` URL.

    Returns None for malformed or non-base64 payloads.
    """
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        return None
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        return None


class ImageAssetResolver:
    """
    Resolves property image URLs.

    Network fetches run in a worker thread so the event loop driving the
    renderer is never blocked.
    """

    def __init__(self, timeout: float = 20, session: Optional[requests.Session] = None):
        self.timeout = timeout
        if session is None:
            session = requests.Session()
            session.headers["User-Agent"] = USER_AGENT
        self.session = session

    async def to_embeddable(self, url: str) -> Optional[bytes]:
        if not url:
            return None
        if url.startswith("data:"):
            data = decode_data_url(url)
            if data is None:
                logger.warning("Malformed data URL for image")
            return data
        if url.startswith(("http://", "https://")):
            return await asyncio.to_thread(self._fetch, url)
        return await asyncio.to_thread(self._read_local, url)

    def _fetch(self, url: str) -> Optional[bytes]:
        try:
            response = self.session.get(url, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.warning("Failed to fetch image %s: %s", url, e)
            return None

        content_type = response.headers.get("Content-Type", "").split(";")[0].strip().lower()
        if content_type and content_type not in EMBEDDABLE_CONTENT_TYPES:
            logger.warning("Image %s has unsupported content type %s", url, content_type)
            return None
        if not response.content:
            logger.warning("Image %s returned an empty body", url)
            return None
        return response.content

    def _read_local(self, url: str) -> Optional[bytes]:
        path = Path(url.removeprefix("file://"))
        try:
            data = path.read_bytes()
        except OSError as e:
            logger.warning("Failed to read image %s: %s", path, e)
            return None
        return data or None
