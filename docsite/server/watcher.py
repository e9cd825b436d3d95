"""Source tree polling and change debouncing for the dev server."""

from __future__ import annotations

import asyncio
import os
from contextlib import suppress
from pathlib import Path
from typing import Awaitable, Callable, Dict, List, Optional, Set, Tuple

from ..logging import get_logger
from ..models import ChangeKind

Snapshot = Dict[str, Tuple[int, int]]
ChangeCallback = Callable[[Path, ChangeKind], None]

_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
}


def snapshot_tree(root: Path) -> Snapshot:
    """Return ``{path: (mtime_ns, size)}`` for every file below ``root``."""
    snapshot: Snapshot = {}
    if not root.is_dir():
        return snapshot
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = [name for name in dirnames if name not in _EXCLUDED_DIRS]
        for filename in filenames:
            path = os.path.join(dirpath, filename)
            try:
                stat_result = os.stat(path)
            except FileNotFoundError:
                # Deleted between listing and stat.
                continue
            snapshot[path] = (stat_result.st_mtime_ns, stat_result.st_size)
    return snapshot


def diff_snapshots(before: Snapshot, after: Snapshot) -> List[Tuple[Path, ChangeKind]]:
    changes: List[Tuple[Path, ChangeKind]] = []
    for path, signature in after.items():
        previous = before.get(path)
        if previous is None:
            changes.append((Path(path), ChangeKind.ADD))
        elif previous != signature:
            changes.append((Path(path), ChangeKind.CHANGE))
    for path in before:
        if path not in after:
            changes.append((Path(path), ChangeKind.UNLINK))
    return changes


class PollingWatcher:
    """Polls ``root`` every ``interval`` seconds and reports file changes."""

    def __init__(self, root: Path, callback: ChangeCallback, *, interval: float = 0.25) -> None:
        self.root = Path(root)
        self.interval = interval
        self._callback = callback
        self._snapshot: Snapshot = {}
        self._task: Optional[asyncio.Task] = None
        self.logger = get_logger("watcher")

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._snapshot = await asyncio.to_thread(snapshot_tree, self.root)
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with suppress(asyncio.CancelledError):
            await task

    async def poll(self) -> List[Tuple[Path, ChangeKind]]:
        """Take a fresh snapshot and report what changed since the last one."""
        current = await asyncio.to_thread(snapshot_tree, self.root)
        changes = diff_snapshots(self._snapshot, current)
        self._snapshot = current
        for path, kind in changes:
            self._callback(path, kind)
        return changes

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.poll()
            except OSError as exc:
                self.logger.warning("Watching %s failed: %s", self.root, exc)


class Debouncer:
    """Collapses a burst of triggers into one call of ``action``.

    Each :meth:`trigger` restarts a single timer; ``action`` runs once the
    timer survives ``delay`` seconds without another trigger.
    """

    def __init__(self, delay: float, action: Callable[[], Awaitable[None]]) -> None:
        self.delay = delay
        self._action = action
        self._handle: Optional[asyncio.TimerHandle] = None
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self) -> None:
        loop = asyncio.get_running_loop()
        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self.delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    async def drain(self) -> None:
        """Wait for actions that already started."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _fire(self) -> None:
        self._handle = None
        task = asyncio.ensure_future(self._action())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)


__all__ = ["Debouncer", "PollingWatcher", "diff_snapshots", "snapshot_tree"]
