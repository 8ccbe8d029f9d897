"""
Persistence facade: one sponsor/team surface over two backends.

Each operation runs against the primary store when the connection manager
reports it reachable, otherwise against the flat-file store. A connected
primary store that fails mid-operation is not rerouted to the flat files;
the error propagates.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence

from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, OperationalError

from sponsor_api.connection import ConnectionManager
from sponsor_api.db import SponsorRepository, SqlRepository
from sponsor_api.records import SponsorRecord, TeamRecord
from sponsor_api.types import (
    DEFAULT_STATUS,
    BulkResult,
    DataSource,
    Page,
    SponsorQuery,
    SponsorStatus,
)

logger = logging.getLogger(__name__)

IMPORT_TEXT_FIELDS = (
    "companyName",
    "companyEmail",
    "contactPerson",
    "phoneNumber",
    "location",
)
DEFAULT_IMPORT_SECTOR = "Unknown"


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_import_row(candidate: dict) -> Optional[dict]:
    """
    Turn one parsed spreadsheet row into a sponsor document.

    Returns None when the row has no company name.
    """
    company_name = _clean_text(candidate.get("companyName"))
    if not company_name:
        return None
    document = {key: _clean_text(candidate.get(key)) for key in IMPORT_TEXT_FIELDS}
    document["companyName"] = company_name
    document["sector"] = _clean_text(candidate.get("sector")) or DEFAULT_IMPORT_SECTOR
    notes = _clean_text(candidate.get("notes"))
    document["notes"] = notes or None
    status = _clean_text(candidate.get("status"))
    document["status"] = status if status in SponsorStatus.values() else DEFAULT_STATUS
    team = candidate.get("assignedTeam")
    if isinstance(team, dict):
        team = team.get("id")
    document["assignedTeam"] = _clean_text(team) or None
    return document


class PersistenceFacade:
    """Selects the backend per operation and exposes a uniform CRUD surface."""

    def __init__(
        self,
        connection: ConnectionManager,
        fallback: SponsorRepository,
        primary_factory: Callable[[Engine], SponsorRepository] = SqlRepository,
    ):
        self.connection = connection
        self.fallback = fallback
        self._primary_factory = primary_factory
        self._primary: Optional[SponsorRepository] = None
        self._primary_engine: Optional[Engine] = None

    def refresh(self) -> bool:
        """Re-derive connectivity (subject to the manager's intervals)."""
        return self.connection.ensure_connected()

    @property
    def source(self) -> DataSource:
        return DataSource.PRIMARY if self.connection.is_connected else DataSource.LOCAL

    def health(self) -> dict:
        connected = self.refresh()
        return {
            "connected": connected,
            "state": self.connection.state.value,
            "source": self.source.value,
        }

    def _primary_repository(self) -> SponsorRepository:
        engine = self.connection.engine
        if self._primary is None or self._primary_engine is not engine:
            self._primary = self._primary_factory(engine)
            self._primary_engine = engine
        return self._primary

    @contextmanager
    def _backend(self) -> Iterator[SponsorRepository]:
        if not self.connection.ensure_connected():
            yield self.fallback
            return
        repository = self._primary_repository()
        try:
            yield repository
        except DBAPIError as exc:
            if exc.connection_invalidated or isinstance(exc, OperationalError):
                self.connection.mark_disconnected(exc)
            logger.exception("Primary store operation failed")
            raise

    def list_sponsors(self, query: SponsorQuery) -> Page:
        with self._backend() as repository:
            return repository.find_sponsors(query)

    def get_sponsor(self, sponsor_id: str) -> SponsorRecord:
        with self._backend() as repository:
            return repository.get_sponsor(sponsor_id)

    def create_sponsor(self, document: dict) -> SponsorRecord:
        with self._backend() as repository:
            return repository.create_sponsor(document)

    def bulk_create_sponsors(self, candidates: Sequence[dict]) -> BulkResult:
        """
        Insert every candidate that has a company name. Rows are not
        de-duplicated against each other or against stored sponsors.
        """
        documents = []
        for candidate in candidates:
            document = normalize_import_row(candidate)
            if document is not None:
                documents.append(document)
        created: list[SponsorRecord] = []
        if documents:
            with self._backend() as repository:
                created = repository.create_sponsors(documents, validate=False)
        result = BulkResult(
            added=len(created),
            skipped=len(candidates) - len(documents),
            total=len(candidates),
            new_sponsors=created,
        )
        logger.info(
            "Bulk import: %d added, %d skipped of %d rows",
            result.added,
            result.skipped,
            result.total,
        )
        return result

    def update_sponsor(self, sponsor_id: str, changes: dict) -> SponsorRecord:
        with self._backend() as repository:
            return repository.update_sponsor(sponsor_id, changes)

    def delete_sponsor(self, sponsor_id: str) -> None:
        with self._backend() as repository:
            repository.delete_sponsor(sponsor_id)

    def list_teams(self) -> list[TeamRecord]:
        with self._backend() as repository:
            return repository.list_teams()

    def create_team(self, document: dict) -> TeamRecord:
        with self._backend() as repository:
            return repository.create_team(document)

    def update_team(self, team_id: str, changes: dict) -> TeamRecord:
        with self._backend() as repository:
            return repository.update_team(team_id, changes)

    def delete_team(self, team_id: str) -> int:
        with self._backend() as repository:
            unassigned = repository.delete_team(team_id)
        if unassigned:
            logger.info("Unassigned %d sponsors from deleted team %s", unassigned, team_id)
        return unassigned
