"""Canonical hashing helpers for stage hashes, run-log seals and artifacts."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 1024 * 1024


def canonical_json_bytes(obj: Any) -> bytes:
    """Produce canonical JSON bytes — deterministic, sorted, compact."""
    return json.dumps(
        obj, sort_keys=True, separators=(",", ":"), ensure_ascii=True, default=str
    ).encode("utf-8")


def sha256_hex(data: bytes) -> str:
    """Return the SHA-256 hex digest of raw bytes."""
    return hashlib.sha256(data).hexdigest()


def sha256_file(path: Path) -> str:
    """Return the SHA-256 hex digest of a file, read in chunks."""
    digest = hashlib.sha256()
    with Path(path).open("rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def walk_tree(root: Path) -> list[Path]:
    """Every directory and file below *root*, sorted.

    Symlinked directories are descended into, so whatever they hold ends up
    in the site as plain files. A link back to a directory on the current
    path is not followed again.
    """
    root = Path(root)
    entries: list[Path] = []
    ancestry = {str(root): frozenset({os.path.realpath(root)})}
    for dirpath, dirnames, filenames in os.walk(root, followlinks=True):
        seen = ancestry.pop(dirpath)
        kept = []
        for name in dirnames:
            path = os.path.join(dirpath, name)
            real = os.path.realpath(path)
            if real in seen:
                continue
            ancestry[path] = seen | {real}
            kept.append(name)
        dirnames[:] = kept
        entries.extend(Path(dirpath, name) for name in kept)
        entries.extend(Path(dirpath, name) for name in filenames)
    return sorted(entries)


def tree_digest(root: Path) -> str:
    """SHA-256 over every file below *root*, keyed by relative POSIX path.

    Two trees with the same files and contents hash equal regardless of
    filesystem ordering or timestamps.
    """
    root = Path(root)
    listing = {
        path.relative_to(root).as_posix(): sha256_file(path)
        for path in walk_tree(root)
        if path.is_file()
    }
    return sha256_hex(canonical_json_bytes(listing))


def compute_input_hash(stage_id: str, inputs: dict[str, Any]) -> str:
    """SHA-256 of canonical(stage_id + sorted inputs)."""
    payload = {"stage_id": stage_id, "inputs": inputs}
    return sha256_hex(canonical_json_bytes(payload))


def compute_output_hash(stage_id: str, outputs: dict[str, Any]) -> str:
    """SHA-256 of canonical(stage_id + sorted outputs)."""
    payload = {"stage_id": stage_id, "outputs": outputs}
    return sha256_hex(canonical_json_bytes(payload))


def compute_entry_hash(entry_dict: dict[str, Any]) -> str:
    """SHA-256 of a run-log entry, excluding the entry_hash field itself."""
    d = {k: v for k, v in entry_dict.items() if k != "entry_hash"}
    return sha256_hex(canonical_json_bytes(d))
