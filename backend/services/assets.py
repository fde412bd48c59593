import logging
import os
import random
import time
from pathlib import Path
from typing import Optional, Union

from fastapi.concurrency import run_in_threadpool

logger = logging.getLogger(__name__)


class AssetStore:
    """Product images on disk, referenced from records as ``/images/<name>``."""

    def __init__(self, directory: Union[str, Path], url_prefix: str = "/images"):
        self.directory = Path(directory).resolve()
        self.url_prefix = url_prefix.rstrip("/")

    def ensure_exists(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def owns(self, ref: str) -> bool:
        return bool(ref) and ref.startswith(self.url_prefix + "/")

    def path_for(self, ref: str) -> Path:
        """Map a stored reference back to its file inside the images dir."""
        if not self.owns(ref):
            raise ValueError(f"Not an image reference: {ref!r}")
        path = (self.directory / ref[len(self.url_prefix) + 1:]).resolve()
        if path.parent != self.directory:
            raise ValueError(f"Image reference escapes the images directory: {ref!r}")
        return path

    async def save(self, data: bytes, original_filename: str = "") -> str:
        ext = os.path.splitext(original_filename or "")[1].lower()
        name = f"{int(time.time() * 1000)}-{random.randint(0, 10 ** 9)}{ext}"
        path = self.directory / name
        await run_in_threadpool(path.write_bytes, data)
        logger.info("Stored image %s (%d bytes)", name, len(data))
        return f"{self.url_prefix}/{name}"

    async def release(self, ref: str) -> None:
        """Delete the file behind ``ref``; an already missing file is fine.

        References to images stored elsewhere (seeded URLs) are left alone.
        Raises ``OSError`` when the file exists but cannot be removed.
        """
        if not self.owns(ref):
            logger.info("Image %s is not stored locally, nothing to remove", ref)
            return
        path = self.path_for(ref)
        try:
            await run_in_threadpool(os.unlink, path)
        except FileNotFoundError:
            logger.warning("Image %s was already gone", ref)
            return
        logger.info("Removed image %s", ref)

    async def stage(self, ref: str) -> Optional[Path]:
        """Move the file behind ``ref`` aside so it can be put back.

        Returns the hidden staged path, or ``None`` when there is nothing
        local to remove. Raises ``OSError`` when the file cannot be moved.
        """
        if not self.owns(ref):
            return None
        path = self.path_for(ref)
        staged = path.with_name(f".deleting-{path.name}")
        try:
            await run_in_threadpool(os.rename, path, staged)
        except FileNotFoundError:
            logger.warning("Image %s was already gone", ref)
            return None
        return staged

    async def restore(self, ref: str, staged: Path) -> None:
        try:
            await run_in_threadpool(os.rename, staged, self.path_for(ref))
        except OSError:
            logger.exception("Failed to restore image %s from %s", ref, staged)
            return
        logger.info("Restored image %s", ref)

    async def purge(self, staged: Path) -> None:
        """Delete a staged file for good; failures are only logged."""
        try:
            await run_in_threadpool(os.unlink, staged)
        except OSError:
            logger.exception("Failed to delete staged image %s", staged)
            return
        logger.info("Removed image %s", staged.name)

    async def discard(self, ref: str) -> None:
        """Best-effort ``release``: failures are logged, never raised."""
        try:
            await self.release(ref)
        except (OSError, ValueError):
            logger.exception("Failed to delete image file %s", ref)
