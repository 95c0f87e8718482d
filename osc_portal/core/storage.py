"""Local-disk file storage for uploaded documents."""

from __future__ import annotations

import logging
import uuid
from pathlib import Path, PurePosixPath

import aiofiles
import aiofiles.os

from osc_portal.core.config import settings

logger = logging.getLogger(__name__)


class LocalStorage:
    """Stores files below a root directory; callers only see relative paths."""

    def __init__(self, root: str | Path):
        self.root = Path(root).resolve()

    def path(self, relative: str) -> Path:
        """Absolute path of a stored file. Rejects paths escaping the root."""
        full = (self.root / relative).resolve()
        if self.root not in full.parents and full != self.root:
            raise ValueError(f"Path escapes storage root: {relative}")
        return full

    async def put(self, directory: str, extension: str, content: bytes) -> str:
        """Write *content* under *directory* with a random name; return its relative path."""
        name = f"{uuid.uuid4().hex}.{extension}" if extension else uuid.uuid4().hex
        relative = str(PurePosixPath(directory) / name)
        target = self.path(relative)
        await aiofiles.os.makedirs(target.parent, exist_ok=True)
        async with aiofiles.open(target, "wb") as fh:
            await fh.write(content)
        logger.debug("Stored %s (%d bytes)", relative, len(content))
        return relative

    async def exists(self, relative: str) -> bool:
        return await aiofiles.os.path.exists(self.path(relative))

    async def delete(self, relative: str) -> bool:
        """Remove a stored file; a missing file is not an error."""
        target = self.path(relative)
        if not await aiofiles.os.path.exists(target):
            logger.warning("Stored file already missing: %s", relative)
            return False
        await aiofiles.os.remove(target)
        return True


storage = LocalStorage(settings.storage_root)


def get_storage() -> LocalStorage:
    """FastAPI dependency returning the configured storage."""
    return storage
