"""
HTTP routes for the sponsor tracker API.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Body, Depends, Query

from sponsor_api.config import Settings, get_settings
from sponsor_api.dependencies import get_facade, get_persistence_facade
from sponsor_api.facade import PersistenceFacade
from sponsor_api.records import validate_sponsor
from sponsor_api.schemas import (
    BulkImportResponse,
    HealthResponse,
    MessageResponse,
    SponsorCreate,
    SponsorListResponse,
    SponsorResponse,
    SponsorUpdate,
    TeamCreate,
    TeamDeleteResponse,
    TeamResponse,
    TeamUpdate,
)
from sponsor_api.types import ALL, SponsorQuery

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health(facade: PersistenceFacade = Depends(get_persistence_facade)):
    return facade.health()


@router.get("/sponsors", response_model=SponsorListResponse)
def list_sponsors(
    page: int = Query(1, ge=1),
    limit: int | None = Query(None, ge=1),
    search: str = Query(""),
    status: str = Query(ALL),
    team: str = Query(ALL),
    facade: PersistenceFacade = Depends(get_facade),
    settings: Settings = Depends(get_settings),
):
    query = SponsorQuery(
        page=page,
        limit=min(limit or settings.default_page_size, settings.max_page_size),
        search=search,
        status=status or ALL,
        team=team or ALL,
    )
    result = facade.list_sponsors(query)
    return SponsorListResponse(
        sponsors=[sponsor.as_dict() for sponsor in result.items],
        pagination=result.pagination(),
    )


@router.get("/sponsors/{sponsor_id}", response_model=SponsorResponse)
def get_sponsor(sponsor_id: str, facade: PersistenceFacade = Depends(get_facade)):
    return facade.get_sponsor(sponsor_id).as_dict()


@router.post("/sponsors", response_model=SponsorResponse, status_code=201)
def create_sponsor(
    payload: SponsorCreate, facade: PersistenceFacade = Depends(get_facade)
):
    sponsor = facade.create_sponsor(payload.model_dump(mode="json"))
    return sponsor.as_dict()


@router.post("/sponsors/bulk", response_model=BulkImportResponse)
def bulk_create_sponsors(
    payload: list[dict[str, Any]] = Body(...),
    facade: PersistenceFacade = Depends(get_facade),
):
    """
    Create one sponsor per parsed spreadsheet row. Rows without a company
    name are skipped.
    """
    result = facade.bulk_create_sponsors(payload)
    return BulkImportResponse(
        added=result.added,
        skipped=result.skipped,
        total=result.total,
        newSponsors=[sponsor.as_dict() for sponsor in result.new_sponsors],
    )


@router.put("/sponsors/{sponsor_id}", response_model=SponsorResponse)
def update_sponsor(
    sponsor_id: str,
    payload: SponsorUpdate,
    facade: PersistenceFacade = Depends(get_facade),
):
    changes = payload.model_dump(mode="json", exclude_unset=True)
    validate_sponsor(changes, partial=True)
    return facade.update_sponsor(sponsor_id, changes).as_dict()


@router.delete("/sponsors/{sponsor_id}", response_model=MessageResponse)
def delete_sponsor(sponsor_id: str, facade: PersistenceFacade = Depends(get_facade)):
    facade.delete_sponsor(sponsor_id)
    return MessageResponse(message="Sponsor deleted")


@router.get("/teams", response_model=list[TeamResponse])
def list_teams(facade: PersistenceFacade = Depends(get_facade)):
    return [team.as_dict() for team in facade.list_teams()]


@router.post("/teams", response_model=TeamResponse, status_code=201)
def create_team(payload: TeamCreate, facade: PersistenceFacade = Depends(get_facade)):
    team = facade.create_team(payload.model_dump())
    logger.info("Created team %s with %d members", team.id, len(team.members))
    return team.as_dict()


@router.put("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    payload: TeamUpdate,
    facade: PersistenceFacade = Depends(get_facade),
):
    return facade.update_team(team_id, payload.model_dump(exclude_unset=True)).as_dict()


@router.delete("/teams/{team_id}", response_model=TeamDeleteResponse)
def delete_team(team_id: str, facade: PersistenceFacade = Depends(get_facade)):
    unassigned = facade.delete_team(team_id)
    return TeamDeleteResponse(message="Team deleted", unassignedSponsors=unassigned)
