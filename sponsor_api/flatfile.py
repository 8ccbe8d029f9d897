"""
Flat-file fallback store.

Each collection is one JSON document holding an array of records. Reads load
the whole array, writes rewrite the whole file. Unreadable files read as an
empty collection; write errors propagate.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import string
import threading
import time
from pathlib import Path
from typing import Sequence

from sponsor_api.records import (
    RecordNotFoundError,
    RecordValidationError,
    SponsorRecord,
    TeamRecord,
)
from sponsor_api.types import DEFAULT_STATUS, Page, SponsorQuery, slice_page

logger = logging.getLogger(__name__)

SPONSORS_FILE = "sponsors.json"
TEAMS_FILE = "teams.json"

_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if not value:
            return "".join(reversed(digits))


def generate_local_id() -> str:
    """Millisecond timestamp in base 36 followed by a random suffix."""
    return _to_base36(int(time.time() * 1000)) + secrets.token_hex(4)


class JsonFileRepository:
    """Stores sponsors and teams in ``<data_dir>/sponsors.json`` and ``teams.json``."""

    def __init__(self, data_dir: str | os.PathLike):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)
        # In-process only; separate processes writing the same files still race.
        self._locks = {SPONSORS_FILE: threading.Lock(), TEAMS_FILE: threading.Lock()}
        for name in (SPONSORS_FILE, TEAMS_FILE):
            path = self.data_dir / name
            if not path.exists():
                self._write(name, [])

    def _read(self, name: str) -> list[dict]:
        path = self.data_dir / name
        try:
            with open(path, "r", encoding="utf-8") as fh:
                documents = json.load(fh)
        except (OSError, ValueError) as exc:
            logger.warning("Could not read %s, treating as empty: %s", path, exc)
            return []
        if not isinstance(documents, list):
            logger.warning("%s does not hold a JSON array, treating as empty", path)
            return []
        return [doc for doc in documents if isinstance(doc, dict)]

    def _write(self, name: str, documents: list[dict]) -> None:
        path = self.data_dir / name
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as fh:
            json.dump(documents, fh, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)

    def _teams_by_id(self) -> dict[str, TeamRecord]:
        return {team.id: team for team in self.list_teams()}

    @staticmethod
    def _index_of(documents: list[dict], record_id: str) -> int:
        for index, document in enumerate(documents):
            if str(document.get("id")) == record_id:
                return index
        return -1

    def find_sponsors(self, query: SponsorQuery) -> Page:
        sponsors = [SponsorRecord.from_dict(doc) for doc in self._read(SPONSORS_FILE)]
        matching = [
            sponsor
            for sponsor in sponsors
            if query.matches(
                sponsor.company_name,
                sponsor.contact_person,
                sponsor.status,
                sponsor.assigned_team,
            )
        ]
        # Append order reversed approximates newest-first.
        matching.reverse()
        page = slice_page(matching, query)
        teams_by_id = self._teams_by_id()
        page.items = [sponsor.expand(teams_by_id) for sponsor in page.items]
        return page

    def get_sponsor(self, sponsor_id: str) -> SponsorRecord:
        documents = self._read(SPONSORS_FILE)
        index = self._index_of(documents, sponsor_id)
        if index < 0:
            raise RecordNotFoundError("Sponsor", sponsor_id)
        return SponsorRecord.from_dict(documents[index]).expand(self._teams_by_id())

    def create_sponsor(self, document: dict) -> SponsorRecord:
        return self.create_sponsors([document])[0]

    def create_sponsors(
        self, documents: Sequence[dict], *, validate: bool = True
    ) -> list[SponsorRecord]:
        # Stored as forwarded; required fields are not re-checked here.
        new_documents = []
        for document in documents:
            stored = dict(document)
            stored["id"] = generate_local_id()
            if stored.get("status") is None:
                stored["status"] = DEFAULT_STATUS
            new_documents.append(stored)
        with self._locks[SPONSORS_FILE]:
            existing = self._read(SPONSORS_FILE)
            existing.extend(new_documents)
            self._write(SPONSORS_FILE, existing)
        teams_by_id = self._teams_by_id()
        return [SponsorRecord.from_dict(doc).expand(teams_by_id) for doc in new_documents]

    def update_sponsor(self, sponsor_id: str, changes: dict) -> SponsorRecord:
        with self._locks[SPONSORS_FILE]:
            documents = self._read(SPONSORS_FILE)
            index = self._index_of(documents, sponsor_id)
            if index < 0:
                raise RecordNotFoundError("Sponsor", sponsor_id)
            merged = {**documents[index], **changes, "id": documents[index]["id"]}
            documents[index] = merged
            self._write(SPONSORS_FILE, documents)
        return SponsorRecord.from_dict(merged).expand(self._teams_by_id())

    def delete_sponsor(self, sponsor_id: str) -> None:
        with self._locks[SPONSORS_FILE]:
            documents = self._read(SPONSORS_FILE)
            index = self._index_of(documents, sponsor_id)
            if index < 0:
                raise RecordNotFoundError("Sponsor", sponsor_id)
            del documents[index]
            self._write(SPONSORS_FILE, documents)

    def list_teams(self) -> list[TeamRecord]:
        return [TeamRecord.from_dict(doc) for doc in self._read(TEAMS_FILE)]

    def create_team(self, document: dict) -> TeamRecord:
        name = (document.get("name") or "").strip()
        if not name:
            raise RecordValidationError("Team validation failed: name is required")
        stored = {
            "id": generate_local_id(),
            "name": name,
            "members": list(document.get("members") or []),
        }
        with self._locks[TEAMS_FILE]:
            documents = self._read(TEAMS_FILE)
            documents.append(stored)
            self._write(TEAMS_FILE, documents)
        return TeamRecord.from_dict(stored)

    def update_team(self, team_id: str, changes: dict) -> TeamRecord:
        if "name" in changes and not (changes["name"] or "").strip():
            raise RecordValidationError("Team validation failed: name is required")
        with self._locks[TEAMS_FILE]:
            documents = self._read(TEAMS_FILE)
            index = self._index_of(documents, team_id)
            if index < 0:
                raise RecordNotFoundError("Team", team_id)
            merged = dict(documents[index])
            if "name" in changes:
                merged["name"] = changes["name"].strip()
            if "members" in changes:
                merged["members"] = list(changes["members"] or [])
            documents[index] = merged
            self._write(TEAMS_FILE, documents)
        return TeamRecord.from_dict(merged)

    def delete_team(self, team_id: str) -> int:
        with self._locks[TEAMS_FILE]:
            documents = self._read(TEAMS_FILE)
            index = self._index_of(documents, team_id)
            if index < 0:
                raise RecordNotFoundError("Team", team_id)
            del documents[index]
            self._write(TEAMS_FILE, documents)
        unassigned = 0
        with self._locks[SPONSORS_FILE]:
            sponsors = self._read(SPONSORS_FILE)
            for sponsor in sponsors:
                if sponsor.get("assignedTeam") == team_id:
                    sponsor["assignedTeam"] = None
                    unassigned += 1
            if unassigned:
                self._write(SPONSORS_FILE, sponsors)
        return unassigned
