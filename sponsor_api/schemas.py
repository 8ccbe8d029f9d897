"""
Pydantic schemas for the sponsor tracker API.

Field names are camelCase to match the web client.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BeforeValidator, BaseModel, ConfigDict, Field

from sponsor_api.types import SponsorStatus


def _team_reference(value: Any) -> Any:
    # The client may echo back an expanded team document.
    if isinstance(value, dict):
        value = value.get("id")
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def _split_members(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        value = value.split(",")
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return value


TeamReference = Annotated[Optional[str], BeforeValidator(_team_reference)]
Members = Annotated[list[str], BeforeValidator(_split_members)]


class SponsorCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    companyName: str = Field(..., min_length=1)
    sector: Optional[str] = None
    companyEmail: str = Field(..., min_length=1)
    contactPerson: str = Field(..., min_length=1)
    phoneNumber: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)
    notes: Optional[str] = None
    status: SponsorStatus = SponsorStatus.IN_PROGRESS
    assignedTeam: TeamReference = None


class SponsorUpdate(BaseModel):
    """Fields to merge into an existing sponsor; omitted fields are untouched."""

    model_config = ConfigDict(str_strip_whitespace=True)

    companyName: Optional[str] = Field(default=None, min_length=1)
    sector: Optional[str] = None
    companyEmail: Optional[str] = Field(default=None, min_length=1)
    contactPerson: Optional[str] = Field(default=None, min_length=1)
    phoneNumber: Optional[str] = Field(default=None, min_length=1)
    location: Optional[str] = Field(default=None, min_length=1)
    notes: Optional[str] = None
    status: Optional[SponsorStatus] = None
    assignedTeam: TeamReference = None


class TeamCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1)
    members: Members = Field(default_factory=list)


class TeamUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1)
    members: Optional[Members] = None


class TeamResponse(BaseModel):
    id: str
    name: str
    members: list[str] = Field(default_factory=list)


class SponsorResponse(BaseModel):
    id: str
    companyName: Optional[str] = None
    sector: Optional[str] = None
    companyEmail: Optional[str] = None
    contactPerson: Optional[str] = None
    phoneNumber: Optional[str] = None
    location: Optional[str] = None
    notes: Optional[str] = None
    status: Optional[str] = None
    assignedTeam: Optional[Union[TeamResponse, str]] = None


class PaginationResponse(BaseModel):
    total: int
    page: int
    pages: int
    limit: int


class SponsorListResponse(BaseModel):
    sponsors: list[SponsorResponse]
    pagination: PaginationResponse


class BulkImportResponse(BaseModel):
    added: int
    skipped: int
    total: int
    newSponsors: list[SponsorResponse]


class MessageResponse(BaseModel):
    message: str


class TeamDeleteResponse(BaseModel):
    message: str
    unassignedSponsors: int


class HealthResponse(BaseModel):
    connected: bool
    state: Literal["connected", "disconnected", "disabled"]
    source: Literal["primary", "local"]
