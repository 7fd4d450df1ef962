"""Single-flight concurrency groups with cooperative cancellation.

A group is keyed by the deployment target. Entering a group records the
new run as the group's holder, which cancels whichever run held it before,
so of two overlapping runs only the later one can reach Deploy.

The holder lives in a file under the groups directory, guarded by an
exclusive file lock, so runs started as separate processes (one CI job
per trigger) see each other. A token re-reads the holder file whenever it
is asked whether it was cancelled. The publish call itself runs while the
group lock is held, so a newer run cannot claim the group halfway through
an older run's upload.
"""

from __future__ import annotations

import logging
import os
import re
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO

from pagewright.errors import RunCancelledError

logger = logging.getLogger(__name__)

# Windows has no fcntl; lock the first byte through msvcrt instead.
if os.name == "nt":
    import msvcrt

    def _lock_file(fh: IO[bytes]) -> None:
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_LOCK, 1)

    def _unlock_file(fh: IO[bytes]) -> None:
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)

else:
    import fcntl

    def _lock_file(fh: IO[bytes]) -> None:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)

    def _unlock_file(fh: IO[bytes]) -> None:
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


class CancellationToken:
    """Per-run flag, set once a newer run supersedes this one.

    A token created by ``ConcurrencyGroups.enter`` consults the group's
    holder file; a free-standing token is only cancelled through
    ``cancel()``.
    """

    def __init__(
        self, run_id: str, group: str, registry: ConcurrencyGroups | None = None
    ) -> None:
        self.run_id = run_id
        self.group = group
        self._registry = registry
        self._event = threading.Event()
        self._reason = ""

    @property
    def cancelled(self) -> bool:
        if not self._event.is_set() and self._registry is not None:
            holder = self._registry.holder(self.group)
            if holder != self.run_id:
                self.cancel(
                    f"superseded by run {holder}" if holder else "group taken over by another run"
                )
        return self._event.is_set()

    @property
    def reason(self) -> str:
        return self._reason

    def cancel(self, reason: str) -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise RunCancelledError if this run has been superseded."""
        if self.cancelled:
            raise RunCancelledError(
                f"Run {self.run_id} cancelled in group {self.group!r}: {self._reason}"
            )

    @contextmanager
    def exclusive(self) -> Iterator[None]:
        """Hold the group for the duration of the block, or raise if superseded."""
        if self._registry is None:
            self.raise_if_cancelled()
            yield
            return
        with self._registry.locked(self.group):
            self.raise_if_cancelled()
            yield

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"<CancellationToken run_id={self.run_id!r} group={self.group!r} {state}>"


class ConcurrencyGroups:
    """Registry of named single-flight groups (``cancel-in-progress``).

    Parameters
    ----------
    state_dir:
        Directory holding one holder file and one lock file per group.
        Every process that should coordinate must use the same directory.
    """

    def __init__(self, state_dir: Path) -> None:
        self.state_dir = Path(state_dir)

    def _file_stem(self, group: str) -> str:
        return re.sub(r"[^A-Za-z0-9._-]", "_", group)

    def _holder_path(self, group: str) -> Path:
        return self.state_dir / f"{self._file_stem(group)}.holder"

    @contextmanager
    def locked(self, group: str) -> Iterator[None]:
        """Exclusive cross-process lock on *group*."""
        self.state_dir.mkdir(parents=True, exist_ok=True)
        lock_path = self.state_dir / f"{self._file_stem(group)}.lock"
        with lock_path.open("a+b") as fh:
            _lock_file(fh)
            try:
                yield
            finally:
                _unlock_file(fh)

    def enter(self, group: str, run_id: str) -> CancellationToken:
        """Claim *group* for *run_id*, cancelling any in-flight holder."""
        with self.locked(group):
            previous = self.holder(group)
            path = self._holder_path(group)
            partial = path.with_name(f"{path.name}.{os.getpid()}.part")
            partial.write_text(run_id, encoding="utf-8")
            os.replace(partial, path)
        if previous is not None and previous != run_id:
            logger.warning("Run %s superseded run %s in group %r", run_id, previous, group)
        return CancellationToken(run_id, group, self)

    def leave(self, token: CancellationToken) -> None:
        """Release the group if *token* still holds it."""
        with self.locked(token.group):
            if self.holder(token.group) == token.run_id:
                self._holder_path(token.group).unlink(missing_ok=True)

    def holder(self, group: str) -> str | None:
        """Run id currently holding *group*, if any."""
        try:
            run_id = self._holder_path(group).read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            return None
        return run_id or None
