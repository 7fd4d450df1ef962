"""Run log entry model — one hash-chained record per state transition.

The log is scoped to a single run and lives in that run's workspace; it
is never shared across runs.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field


class RunLogEntry(BaseModel):
    """A single sealed transition record."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: str
    stage_id: str
    state_transition: str  # "from_state->to_state", e.g. "not_started->running"
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    input_hash: str = ""
    output_hash: str = ""
    artifact_references: list[str] = []
    detail: str = ""  # failure or cancellation reason
    previous_entry_hash: str = ""
    entry_hash: str = ""  # computed on append, seals this entry
