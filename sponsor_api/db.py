"""
Storage port for sponsors and teams, and the SQLAlchemy-backed primary store.
"""

from __future__ import annotations

import uuid
from typing import Iterable, Protocol, Sequence

from sqlalchemy import JSON, Column, Integer, String, Text, func, or_, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from sponsor_api.records import (
    RecordNotFoundError,
    RecordValidationError,
    SponsorRecord,
    TeamRecord,
    to_attributes,
    validate_sponsor,
)
from sponsor_api.types import ALL, DEFAULT_STATUS, UNASSIGNED, Page, SponsorQuery


class SponsorRepository(Protocol):
    """Operations the API needs from a sponsor/team backend."""

    def find_sponsors(self, query: SponsorQuery) -> Page:
        ...

    def get_sponsor(self, sponsor_id: str) -> SponsorRecord:
        ...

    def create_sponsor(self, document: dict) -> SponsorRecord:
        ...

    def create_sponsors(
        self, documents: Sequence[dict], *, validate: bool = True
    ) -> list[SponsorRecord]:
        ...

    def update_sponsor(self, sponsor_id: str, changes: dict) -> SponsorRecord:
        ...

    def delete_sponsor(self, sponsor_id: str) -> None:
        ...

    def list_teams(self) -> list[TeamRecord]:
        ...

    def create_team(self, document: dict) -> TeamRecord:
        ...

    def update_team(self, team_id: str, changes: dict) -> TeamRecord:
        ...

    def delete_team(self, team_id: str) -> int:
        """Delete a team and return how many sponsors were unassigned from it."""
        ...


Base = declarative_base()


class TeamRow(Base):
    __tablename__ = "teams"

    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    members = Column(JSON, nullable=False, default=list)


class SponsorRow(Base):
    __tablename__ = "sponsors"

    # Insertion order; newest-first listings sort on it.
    seq = Column(Integer, primary_key=True, autoincrement=True)
    id = Column(String(64), nullable=False, unique=True, index=True)
    company_name = Column(String, nullable=False)
    sector = Column(String, nullable=True)
    company_email = Column(String, nullable=False)
    contact_person = Column(String, nullable=False)
    phone_number = Column(String, nullable=False)
    location = Column(String, nullable=False)
    notes = Column(Text, nullable=True)
    status = Column(String, nullable=False, default=DEFAULT_STATUS, index=True)
    assigned_team = Column(String(64), nullable=True, index=True)


def init_schema(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def sponsor_conditions(query: SponsorQuery) -> list:
    """SQL form of ``SponsorQuery.matches``."""
    conditions = []
    term = query.search_term
    if term:
        pattern = f"%{_escape_like(term)}%"
        conditions.append(
            or_(
                func.lower(SponsorRow.company_name).like(pattern, escape="\\"),
                func.lower(SponsorRow.contact_person).like(pattern, escape="\\"),
            )
        )
    if query.status and query.status != ALL:
        conditions.append(SponsorRow.status == query.status)
    if query.team and query.team != ALL:
        if query.team == UNASSIGNED:
            conditions.append(
                or_(SponsorRow.assigned_team.is_(None), SponsorRow.assigned_team == "")
            )
        else:
            conditions.append(SponsorRow.assigned_team == query.team)
    return conditions


class SqlRepository:
    """
    SQLAlchemy-backed implementation. Accepts any SQLAlchemy engine (e.g., Postgres or SQLite for tests).
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.Session = sessionmaker(
            bind=engine, class_=Session, expire_on_commit=False, future=True
        )

    def _to_sponsor(self, row: SponsorRow) -> SponsorRecord:
        return SponsorRecord(
            id=row.id,
            company_name=row.company_name,
            sector=row.sector,
            company_email=row.company_email,
            contact_person=row.contact_person,
            phone_number=row.phone_number,
            location=row.location,
            notes=row.notes,
            status=row.status,
            assigned_team=row.assigned_team or None,
        )

    def _to_team(self, row: TeamRow) -> TeamRecord:
        return TeamRecord(id=row.id, name=row.name, members=list(row.members or []))

    def _expand(self, session: Session, records: Iterable[SponsorRecord]) -> list[SponsorRecord]:
        records = list(records)
        team_ids = {record.assigned_team for record in records if record.assigned_team}
        teams_by_id: dict[str, TeamRecord] = {}
        if team_ids:
            rows = session.scalars(select(TeamRow).where(TeamRow.id.in_(team_ids)))
            teams_by_id = {row.id: self._to_team(row) for row in rows}
        return [record.expand(teams_by_id) for record in records]

    def _sponsor_row(self, session: Session, sponsor_id: str) -> SponsorRow:
        row = session.scalars(select(SponsorRow).where(SponsorRow.id == sponsor_id)).first()
        if row is None:
            raise RecordNotFoundError("Sponsor", sponsor_id)
        return row

    def _team_row(self, session: Session, team_id: str) -> TeamRow:
        row = session.scalars(select(TeamRow).where(TeamRow.id == team_id)).first()
        if row is None:
            raise RecordNotFoundError("Team", team_id)
        return row

    def _new_sponsor_row(self, document: dict, validate: bool = True) -> SponsorRow:
        if validate:
            validate_sponsor(document)
        attrs = to_attributes(document)
        if attrs.get("status") is None:
            attrs["status"] = DEFAULT_STATUS
        return SponsorRow(id=uuid.uuid4().hex, **attrs)

    def _commit(self, session: Session) -> None:
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            raise RecordValidationError(str(exc.orig)) from exc

    def find_sponsors(self, query: SponsorQuery) -> Page:
        conditions = sponsor_conditions(query)
        with self.Session() as session:
            total = session.scalar(
                select(func.count()).select_from(SponsorRow).where(*conditions)
            )
            rows = session.scalars(
                select(SponsorRow)
                .where(*conditions)
                .order_by(SponsorRow.seq.desc())
                .offset(query.offset)
                .limit(query.limit)
            ).all()
            items = self._expand(session, (self._to_sponsor(row) for row in rows))
        return Page(items=items, total=total or 0, page=query.page, limit=query.limit)

    def get_sponsor(self, sponsor_id: str) -> SponsorRecord:
        with self.Session() as session:
            row = self._sponsor_row(session, sponsor_id)
            return self._expand(session, [self._to_sponsor(row)])[0]

    def create_sponsor(self, document: dict) -> SponsorRecord:
        return self.create_sponsors([document])[0]

    def create_sponsors(
        self, documents: Sequence[dict], *, validate: bool = True
    ) -> list[SponsorRecord]:
        """
        Insert all documents in one transaction. Bulk import passes
        ``validate=False``; NOT NULL columns still apply.
        """
        rows = [self._new_sponsor_row(document, validate) for document in documents]
        with self.Session() as session:
            session.add_all(rows)
            self._commit(session)
            return self._expand(session, [self._to_sponsor(row) for row in rows])

    def update_sponsor(self, sponsor_id: str, changes: dict) -> SponsorRecord:
        validate_sponsor(changes, partial=True)
        attrs = to_attributes(changes)
        with self.Session() as session:
            row = self._sponsor_row(session, sponsor_id)
            for attr, value in attrs.items():
                setattr(row, attr, value)
            self._commit(session)
            return self._expand(session, [self._to_sponsor(row)])[0]

    def delete_sponsor(self, sponsor_id: str) -> None:
        with self.Session() as session:
            row = self._sponsor_row(session, sponsor_id)
            session.delete(row)
            session.commit()

    def list_teams(self) -> list[TeamRecord]:
        with self.Session() as session:
            rows = session.scalars(select(TeamRow).order_by(TeamRow.seq.asc()))
            return [self._to_team(row) for row in rows]

    def create_team(self, document: dict) -> TeamRecord:
        name = (document.get("name") or "").strip()
        if not name:
            raise RecordValidationError("Team validation failed: name is required")
        with self.Session() as session:
            row = TeamRow(
                id=uuid.uuid4().hex,
                name=name,
                members=list(document.get("members") or []),
            )
            session.add(row)
            self._commit(session)
            return self._to_team(row)

    def update_team(self, team_id: str, changes: dict) -> TeamRecord:
        if "name" in changes and not (changes["name"] or "").strip():
            raise RecordValidationError("Team validation failed: name is required")
        with self.Session() as session:
            row = self._team_row(session, team_id)
            if "name" in changes:
                row.name = changes["name"].strip()
            if "members" in changes:
                row.members = list(changes["members"] or [])
            self._commit(session)
            return self._to_team(row)

    def delete_team(self, team_id: str) -> int:
        with self.Session() as session:
            row = self._team_row(session, team_id)
            session.delete(row)
            result = session.execute(
                update(SponsorRow)
                .where(SponsorRow.assigned_team == team_id)
                .values(assigned_team=None)
            )
            session.commit()
            return result.rowcount or 0
