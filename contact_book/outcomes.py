"""Outcomes reported to the presentation layer after a store mutation."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional


class OutcomeKind(str, Enum):
    ADDED = "added"
    UPDATED = "updated"
    DELETED = "deleted"
    DEGRADED = "degraded"  # record written, image step failed
    INVALID = "invalid"
    NOT_FOUND = "not_found"
    FAILED = "failed"
    IGNORED = "ignored"  # submit while another is in flight


SUCCESS_KINDS = {OutcomeKind.ADDED, OutcomeKind.UPDATED, OutcomeKind.DELETED}


@dataclass(slots=True)
class Outcome:
    """What happened, in a form the UI can render as a notification."""

    kind: OutcomeKind
    message: str
    contact_id: Optional[str] = None
    errors: Optional[Dict[str, bool]] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.kind in SUCCESS_KINDS

    @property
    def level(self) -> str:
        if self.ok:
            return "success"
        if self.kind in (OutcomeKind.DEGRADED, OutcomeKind.NOT_FOUND, OutcomeKind.IGNORED):
            return "warning"
        return "error"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind.value,
            "message": self.message,
            "level": self.level,
            "contactId": self.contact_id,
            "errors": self.errors,
            "error": str(self.error) if self.error else None,
        }
