"""Typed containers shared across the saver."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass
class AttachmentRecord:
    """One attachment of a Gmail thread, in thread enumeration order."""

    name: str
    size: int
    source_index: int
    content: bytes = b""
    mime_type: str = "application/octet-stream"
    message_id: str = ""
    attachment_id: Optional[str] = None

    @property
    def selection_key(self) -> str:
        return f"{self.name}_{self.source_index}"


@dataclass
class PMOResolution:
    """Terminal outcome of one folder resolution call."""

    success: bool
    folder_id: Optional[str] = None
    created: bool = False
    error: Optional[str] = None

    @classmethod
    def found(cls, folder_id: str, created: bool) -> "PMOResolution":
        return cls(success=True, folder_id=folder_id, created=created)

    @classmethod
    def failed(cls, error: str) -> "PMOResolution":
        return cls(success=False, error=error)


@dataclass
class FolderAccess:
    """Result of opening a Drive folder by id."""

    success: bool
    folder: Any = None
    name: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class Saved:
    final_name: str


@dataclass(frozen=True)
class SkippedDuplicate:
    name: str


@dataclass(frozen=True)
class Failed:
    name: str
    error: str


WriteOutcome = Union[Saved, SkippedDuplicate, Failed]


@dataclass
class FolderWriteResult:
    """Per-attachment outcomes of a save, in input order."""

    outcomes: list[WriteOutcome] = field(default_factory=list)

    @property
    def saved_names(self) -> list[str]:
        return [item.final_name for item in self.outcomes if isinstance(item, Saved)]

    @property
    def skipped_names(self) -> list[str]:
        return [item.name for item in self.outcomes if isinstance(item, SkippedDuplicate)]

    @property
    def failed_names(self) -> list[str]:
        return [item.name for item in self.outcomes if isinstance(item, Failed)]

    @property
    def saved_count(self) -> int:
        return len(self.saved_names)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped_names)


@dataclass
class JiraIssue:
    """Essential fields of a Jira issue shown in the ticket picker."""

    key: str
    summary: str
    status: str
    issue_type: str
    project_key: str
    project_name: str


@dataclass
class JiraSearchResult:
    projects: dict[str, dict[str, Any]] = field(default_factory=dict)
    issues: list[JiraIssue] = field(default_factory=list)
    total: int = 0


@dataclass
class ConnectionCheck:
    """Outcome of a connectivity check."""

    success: bool
    detail: Optional[str] = None
    error: Optional[str] = None
