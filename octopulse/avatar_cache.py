"""Local cache of small PNG avatars used in desktop notifications."""

from __future__ import annotations

import io
import logging
import tempfile
import time
from datetime import timedelta
from pathlib import Path

import httpx
from PIL import Image

logger = logging.getLogger(__name__)

_PNG_MODES = {"1", "L", "LA", "I", "I;16", "P", "RGB", "RGBA"}


class AvatarCache:
    """Downloads avatars once a day and keeps them as resized PNG files."""

    SIZE = 18
    MAX_CACHE_AGE = timedelta(days=1)

    def __init__(
        self,
        directory: str | Path | None = None,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.directory = Path(directory) if directory is not None else Path(tempfile.gettempdir())
        self._http = http

    def local_path(self, login: str) -> Path:
        """Where the avatar of ``login`` is stored."""
        return self.directory / f"octopulse-avatar-{login}-{self.SIZE}.png"

    def local_uri(self, login: str) -> str:
        """The ``file://`` URI of the avatar of ``login``."""
        return self.local_path(login).absolute().as_uri()

    async def ensure_avatar(self, login: str, avatar_url: str) -> str:
        """Make sure a fresh avatar is cached and return its URI."""
        path = self.local_path(login)
        if self._is_fresh(path):
            return self.local_uri(login)
        await self._download(path, avatar_url)
        return self.local_uri(login)

    def _is_fresh(self, path: Path) -> bool:
        try:
            modified = path.stat().st_mtime
        except OSError:
            return False
        age = time.time() - modified
        return 0 <= age < self.MAX_CACHE_AGE.total_seconds()

    async def _download(self, path: Path, avatar_url: str) -> None:
        url = httpx.URL(avatar_url)
        if not url.scheme or not url.host:
            raise ValueError(f"invalid avatar URL: {avatar_url!r}")
        url = url.copy_add_param("s", str(self.SIZE))
        logger.debug("Downloading avatar from: %s", url)

        if self._http is not None:
            response = await self._http.get(url)
        else:
            async with httpx.AsyncClient() as client:
                response = await client.get(url)
        response.raise_for_status()

        with Image.open(io.BytesIO(response.content)) as img:
            resized = self._resize(img)
        resized.save(path, format="PNG")

    def _resize(self, img: Image.Image) -> Image.Image:
        width, height = img.size
        ratio = min(self.SIZE / width, self.SIZE / height)
        size = (max(1, round(width * ratio)), max(1, round(height * ratio)))
        if img.mode not in _PNG_MODES:
            img = img.convert("RGBA")
        return img.resize(size, Image.Resampling.LANCZOS)