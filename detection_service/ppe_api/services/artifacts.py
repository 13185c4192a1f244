"""
Lifecycle management for generated person images.

Every image written for a request is registered here, served from the
static processed-images endpoint and removed by whichever fires first:
the per-request deferred deletion or the periodic sweep of stale files.
Deletion is delete-if-exists, so the two triggers may race safely.
"""
import asyncio
import os
import threading
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Set, Tuple

from loguru import logger

from ppe_api.core.config import settings


Clock = Callable[[], float]


@dataclass(frozen=True)
class GeneratedArtifact:
    path: str
    created_at: float


class ArtifactRegistry:
    """Thread-safe mapping of generated file paths to their creation time."""

    def __init__(self, clock: Clock = time.time):
        self._clock = clock
        self._artifacts: Dict[str, float] = {}
        self._lock = threading.Lock()

    def add(self, path: str) -> GeneratedArtifact:
        artifact = GeneratedArtifact(path=path, created_at=self._clock())
        with self._lock:
            self._artifacts[path] = artifact.created_at
        return artifact

    def discard(self, path: str) -> None:
        with self._lock:
            self._artifacts.pop(path, None)

    def get(self, path: str) -> Optional[GeneratedArtifact]:
        with self._lock:
            created_at = self._artifacts.get(path)
        if created_at is None:
            return None
        return GeneratedArtifact(path=path, created_at=created_at)


class ArtifactManager:
    """Creates, tracks and removes generated image files."""

    def __init__(
        self,
        directory: str = None,
        base_url: str = None,
        registry: ArtifactRegistry = None,
        delete_delay: float = None,
        max_age: float = None,
        sweep_interval: float = None,
        clock: Clock = time.time
    ):
        """
        Initialize the artifact manager.

        Args:
            directory: Directory generated images are written to
            base_url: Public URL prefix the directory is served under
            registry: Registry of tracked files (a new one by default)
            delete_delay: Seconds after a response before its files are deleted
            max_age: Age in seconds past which the sweep removes a file
            sweep_interval: Seconds between periodic sweeps
            clock: Time source, injectable for tests
        """
        self.directory = Path(directory or settings.PROCESSED_IMAGES_DIR)
        self.base_url = (base_url or f"{settings.SERVER_URL}{settings.PROCESSED_IMAGES_URL}").rstrip("/")
        self.clock = clock
        self.registry = registry if registry is not None else ArtifactRegistry(clock)
        self.delete_delay = settings.ARTIFACT_DELETE_DELAY if delete_delay is None else delete_delay
        self.max_age = settings.ARTIFACT_MAX_AGE if max_age is None else max_age
        self.sweep_interval = settings.ARTIFACT_SWEEP_INTERVAL if sweep_interval is None else sweep_interval

        self._sweep_task: Optional[asyncio.Task] = None
        self._pending: Set[asyncio.Task] = set()

    def ensure_directory(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def new_artifact_path(self, person_id: int) -> Tuple[str, str]:
        """
        Reserve a unique file name for a person's image.

        Returns:
            Tuple of (file path, file name)
        """
        file_name = f"person_{person_id}_{uuid.uuid4()}.png"
        return str(self.directory / file_name), file_name

    def url_for(self, file_name: str) -> str:
        return f"{self.base_url}/{file_name}"

    def register(self, path: str) -> GeneratedArtifact:
        return self.registry.add(path)

    def write(self, person_id: int, data: bytes) -> Tuple[str, str]:
        """
        Write an image to the artifact directory and start tracking it.

        Returns:
            Tuple of (file path, public URL)
        """
        self.ensure_directory()
        path, file_name = self.new_artifact_path(person_id)
        with open(path, "xb") as f:
            f.write(data)
        self.register(path)
        logger.debug(f"Generated artifact {path}")
        return path, self.url_for(file_name)

    def delete_file(self, path: str) -> bool:
        """
        Delete a generated file if it still exists.

        Returns:
            True if a file was removed, False if it was already gone or
            could not be removed
        """
        self.registry.discard(path)
        try:
            os.remove(path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error cleaning up file {path}: {e}")
            return False
        logger.info(f"Cleaned up file: {path}")
        return True

    def delete_files(self, paths: Iterable[str]) -> int:
        return sum(1 for path in paths if self.delete_file(path))

    async def schedule_deletion(self, paths: Iterable[str], delay: float = None) -> asyncio.Task:
        """
        Schedule a batch of files for deletion after ``delay`` seconds.

        Returns immediately; the deletion runs as a task on the current loop.
        """
        paths = list(paths)
        delay = self.delete_delay if delay is None else delay
        task = asyncio.get_running_loop().create_task(self._delete_later(paths, delay))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        logger.debug(f"Scheduled deletion of {len(paths)} file(s) in {delay}s")
        return task

    async def _delete_later(self, paths: List[str], delay: float) -> int:
        await asyncio.sleep(delay)
        return self.delete_files(paths)

    def _iter_files(self) -> List[Path]:
        if not self.directory.exists():
            return []
        return [entry for entry in self.directory.iterdir() if entry.is_file()]

    def sweep(self, max_age: float = None, now: float = None) -> int:
        """
        Remove files in the artifact directory older than ``max_age`` seconds.

        A file's age runs from the earlier of its registration time and its
        modification time. Untracked files, such as those left over from a
        previous process, are aged by modification time alone.

        Returns:
            Number of files removed
        """
        max_age = self.max_age if max_age is None else max_age
        now = self.clock() if now is None else now
        removed = 0

        for entry in self._iter_files():
            try:
                modified = entry.stat().st_mtime
            except FileNotFoundError:
                continue
            tracked = self.registry.get(str(entry))
            created_at = min(modified, tracked.created_at) if tracked else modified
            if now - created_at > max_age:
                if self.delete_file(str(entry)):
                    removed += 1
                    logger.info(f"Periodic cleanup: removed old file {entry}")

        return removed

    def purge_all(self) -> int:
        """Remove every file currently stored in the artifact directory."""
        removed = self.delete_files(str(entry) for entry in self._iter_files())
        logger.info(f"Manual cleanup removed {removed} file(s) from {self.directory}")
        return removed

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                await asyncio.get_running_loop().run_in_executor(None, self.sweep)
            except OSError as e:
                logger.error(f"Error during periodic cleanup: {e}")

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self.ensure_directory()
        self._sweep_task = asyncio.get_running_loop().create_task(self._sweep_loop())
        logger.info(
            f"Artifact sweep started: every {self.sweep_interval}s, max age {self.max_age}s, dir {self.directory}"
        )

    async def stop(self) -> None:
        """Cancel the periodic sweep and any pending deferred deletions."""
        tasks = list(self._pending)
        if self._sweep_task is not None:
            tasks.append(self._sweep_task)
            self._sweep_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Artifact sweep stopped")
