from __future__ import annotations

import asyncio
import logging
import time
from pathlib import Path

from todu.domain.accounts.ports import AvatarStorage

logger = logging.getLogger(__name__)

AVATAR_URL_PREFIX = "/uploads/avatars/"


class LocalAvatarStorage(AvatarStorage):
    """Stores avatars as ``<upload_dir>/avatars/<userId>-<millis>.<ext>``, served under /uploads."""

    def __init__(self, upload_dir: Path) -> None:
        self._dir = Path(upload_dir) / "avatars"

    async def save(self, user_id: str, extension: str, data: bytes) -> str:
        filename = f"{user_id}-{int(time.time() * 1000)}.{extension}"

        def _write() -> None:
            self._dir.mkdir(parents=True, exist_ok=True)
            (self._dir / filename).write_bytes(data)

        await asyncio.to_thread(_write)
        return AVATAR_URL_PREFIX + filename

    async def delete(self, avatar_url: str) -> None:
        if not avatar_url or avatar_url.startswith("http"):
            return
        # basename only, never a path from the client
        path = self._dir / Path(avatar_url).name
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Could not delete old avatar %s: %s", path, e)
