"""Append-only, hash-chained record of a single run's state transitions.

The log is the source of truth for what happened in a run; the terminal
renderer and the exported run report are projections of it. It lives in
memory and, on request, is written into the run's own workspace — no
state is carried between runs.
"""

from __future__ import annotations

import json
from pathlib import Path

from pagewright.core.hasher import compute_entry_hash
from pagewright.models.ledger import RunLogEntry


class RunLogIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class RunLog:
    """Append-only transition log for one run."""

    def __init__(self, run_id: str) -> None:
        self.run_id = run_id
        self._entries: list[RunLogEntry] = []

    def append(self, entry: RunLogEntry) -> RunLogEntry:
        """Seal *entry* onto the chain and return the sealed copy.

        This is the ONLY write method. There is no update or delete.
        """
        if entry.run_id != self.run_id:
            raise ValueError(f"Entry for run {entry.run_id} appended to log of {self.run_id}")
        previous_hash = self._entries[-1].entry_hash if self._entries else ""
        entry_dict = entry.model_dump(mode="json")
        entry_dict["previous_entry_hash"] = previous_hash
        sealed = entry.model_copy(
            update={
                "previous_entry_hash": previous_hash,
                "entry_hash": compute_entry_hash(entry_dict),
            }
        )
        self._entries.append(sealed)
        return sealed

    @property
    def entries(self) -> list[RunLogEntry]:
        return list(self._entries)

    def stage_history(self, stage_id: str) -> list[RunLogEntry]:
        return [e for e in self._entries if e.stage_id == stage_id]

    def verify_chain(self) -> bool:
        """Recompute every seal and link; raise RunLogIntegrityError on mismatch."""
        prev_hash = ""
        for entry in self._entries:
            if entry.previous_entry_hash != prev_hash:
                raise RunLogIntegrityError(
                    f"Chain broken at entry {entry.entry_id}: "
                    f"expected previous_hash={prev_hash!r}, "
                    f"got {entry.previous_entry_hash!r}"
                )
            expected = compute_entry_hash(entry.model_dump(mode="json"))
            if entry.entry_hash != expected:
                raise RunLogIntegrityError(
                    f"Tampered entry {entry.entry_id}: "
                    f"expected hash={expected!r}, got {entry.entry_hash!r}"
                )
            prev_hash = entry.entry_hash
        return True

    def export(self, path: Path) -> Path:
        """Write the log as a JSON report."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "run_id": self.run_id,
            "entries": [e.model_dump(mode="json") for e in self._entries],
        }
        path.write_text(json.dumps(payload, indent=2, sort_keys=True), encoding="utf-8")
        return path
