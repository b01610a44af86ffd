"""
Directory mirror data models for hostkit.

This module defines the mirror task, the non-fatal per-entry failures collected
while walking, and the overall result of a mirror operation.
"""

from typing import Dict, List, Optional, Any
from pathlib import Path
from enum import Enum
from pydantic import BaseModel, Field, field_validator


class MirrorErrorKind(Enum):
    """Failure kinds reported by the directory mirror."""
    SELF_COPY_REJECTED = "self_copy_rejected"
    SOURCE_UNREADABLE = "source_unreadable"
    CLEAN_FAILED = "clean_failed"
    FILE_COPY_FAILED = "file_copy_failed"
    DIRECTORY_CREATE_FAILED = "directory_create_failed"


class MirrorTask(BaseModel):
    """
    A single mirror request.

    Attributes:
        source_path: Directory tree to copy from
        destination_path: Directory tree to copy into
        clean: Whether to delete the destination tree before copying
    """

    source_path: str = Field(..., min_length=1, description="Directory tree to copy from")
    destination_path: str = Field(..., min_length=1, description="Directory tree to copy into")
    clean: bool = Field(False, description="Delete the destination tree before copying")

    @field_validator('source_path', 'destination_path', mode='before')
    @classmethod
    def validate_path(cls, v) -> str:
        """Accept Path objects and strings alike."""
        if isinstance(v, Path):
            return str(v)
        return v

    @property
    def source(self) -> Path:
        return Path(self.source_path)

    @property
    def destination(self) -> Path:
        return Path(self.destination_path)


class MirrorFailure(BaseModel):
    """A failure met while mirroring, with the path it concerns."""

    kind: MirrorErrorKind = Field(..., description="Failure kind")
    path: str = Field(..., description="Path the failure concerns")
    native_code: Optional[int] = Field(None, description="OS error number, if any")
    message: str = Field("", description="Human-readable detail")

    def __str__(self) -> str:
        text = f"{self.kind.value}: {self.path}"
        if self.native_code is not None:
            text += f" (errno {self.native_code})"
        if self.message:
            text += f" - {self.message}"
        return text


class MirrorResult(BaseModel):
    """
    Outcome of a mirror operation.

    A mirror succeeds unless a terminal failure (self-copy rejection, an
    unreadable source or a failed clean) stopped it. Per-file and per-directory
    failures are non-fatal and collected in ``failures``.

    Attributes:
        task: The mirror request
        succeeded: Whether the mirror ran to completion
        error: Terminal failure, if any
        failures: Non-fatal failures met during traversal
        stats: Operation counters
    """

    task: MirrorTask = Field(..., description="The mirror request")
    succeeded: bool = Field(..., description="Whether the mirror ran to completion")
    error: Optional[MirrorFailure] = Field(None, description="Terminal failure")
    failures: List[MirrorFailure] = Field(default_factory=list, description="Non-fatal failures")
    stats: Dict[str, int] = Field(default_factory=dict, description="Operation counters")

    @property
    def files_copied(self) -> int:
        return self.stats.get('files_copied', 0)

    @property
    def files_skipped(self) -> int:
        return self.stats.get('files_skipped', 0)

    def has_failures(self) -> bool:
        """Check if any non-fatal failure was recorded."""
        return bool(self.failures)

    def get_failures_by_kind(self, kind: MirrorErrorKind) -> List[MirrorFailure]:
        """Get non-fatal failures of a specific kind."""
        return [failure for failure in self.failures if failure.kind == kind]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        data = self.model_dump()
        if self.error is not None:
            data['error']['kind'] = self.error.kind.value
        for failure in data['failures']:
            failure['kind'] = failure['kind'].value
        return data

    def __str__(self) -> str:
        parts = [f"{self.task.source_path} -> {self.task.destination_path}"]
        if self.succeeded:
            parts.append(f"copied {self.files_copied}, skipped {self.files_skipped}")
        else:
            parts.append(f"failed: {self.error}")
        if self.failures:
            parts.append(f"{len(self.failures)} failures")
        return " | ".join(parts)
