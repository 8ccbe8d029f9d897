"""
Sponsor and team records shared by both storage backends.

Documents on the wire and in the flat files use camelCase keys; the records
use snake_case attributes and convert at the edges.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from sponsor_api.types import DEFAULT_STATUS, SponsorStatus


class RecordNotFoundError(LookupError):
    """Raised when an id does not match any stored record."""

    def __init__(self, kind: str, record_id: str):
        super().__init__(f"{kind} not found: {record_id}")
        self.kind = kind
        self.record_id = record_id


class RecordValidationError(ValueError):
    """Raised when a record violates the stored schema."""


SPONSOR_FIELDS = {
    "company_name": "companyName",
    "sector": "sector",
    "company_email": "companyEmail",
    "contact_person": "contactPerson",
    "phone_number": "phoneNumber",
    "location": "location",
    "notes": "notes",
    "status": "status",
    "assigned_team": "assignedTeam",
}
DOCUMENT_FIELDS = {doc_key: attr for attr, doc_key in SPONSOR_FIELDS.items()}

REQUIRED_SPONSOR_FIELDS = (
    "companyName",
    "companyEmail",
    "contactPerson",
    "phoneNumber",
    "location",
)


def missing_required(document: dict, keys: Iterable[str] = REQUIRED_SPONSOR_FIELDS) -> list[str]:
    """Return the required keys that are absent or blank in ``document``."""
    missing = []
    for key in keys:
        value = document.get(key)
        if value is None or (isinstance(value, str) and not value.strip()):
            missing.append(key)
    return missing


def to_attributes(document: dict) -> dict:
    """Map camelCase document keys to record attributes, dropping unknown keys."""
    attrs = {}
    for key, value in document.items():
        attr = DOCUMENT_FIELDS.get(key)
        if attr is None:
            continue
        if attr == "assigned_team" and not value:
            value = None
        attrs[attr] = value
    return attrs


@dataclass
class TeamRecord:
    id: str
    name: str
    members: list[str] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "members": list(self.members)}

    @classmethod
    def from_dict(cls, document: dict) -> "TeamRecord":
        return cls(
            id=str(document.get("id", "")),
            name=document.get("name") or "",
            members=list(document.get("members") or []),
        )


@dataclass
class SponsorRecord:
    id: str
    company_name: Optional[str] = None
    sector: Optional[str] = None
    company_email: Optional[str] = None
    contact_person: Optional[str] = None
    phone_number: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: str = DEFAULT_STATUS
    assigned_team: Optional[str] = None
    team: Optional[TeamRecord] = field(default=None, compare=False)

    def expand(self, teams_by_id: dict[str, TeamRecord]) -> "SponsorRecord":
        """Attach the referenced team when it exists; stale ids stay bare."""
        self.team = teams_by_id.get(self.assigned_team) if self.assigned_team else None
        return self

    def as_dict(self) -> dict:
        document = {"id": self.id}
        for attr, key in SPONSOR_FIELDS.items():
            document[key] = getattr(self, attr)
        if self.team is not None:
            document["assignedTeam"] = self.team.as_dict()
        return document

    @classmethod
    def from_dict(cls, document: dict) -> "SponsorRecord":
        attrs = to_attributes(document)
        attrs.setdefault("status", DEFAULT_STATUS)
        if attrs["status"] is None:
            attrs["status"] = DEFAULT_STATUS
        assigned = attrs.get("assigned_team")
        if isinstance(assigned, dict):
            attrs["assigned_team"] = assigned.get("id") or None
        return cls(id=str(document.get("id", "")), **attrs)


def validate_sponsor(document: dict, *, partial: bool = False) -> None:
    """
    Enforce required fields and the status enum.

    With ``partial`` only the keys present in ``document`` are checked, so an
    update may omit required fields but may not blank them.
    """
    keys = REQUIRED_SPONSOR_FIELDS
    if partial:
        keys = [key for key in REQUIRED_SPONSOR_FIELDS if key in document]
    missing = missing_required(document, keys)
    if missing:
        raise RecordValidationError(
            "Sponsor validation failed: " + ", ".join(f"{key} is required" for key in missing)
        )
    status = document.get("status")
    if status is None:
        if partial and "status" in document:
            raise RecordValidationError("Sponsor validation failed: status is required")
    elif status not in SponsorStatus.values():
        raise RecordValidationError(f"Sponsor validation failed: invalid status {status!r}")
