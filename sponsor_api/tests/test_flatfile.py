import json
import os
import tempfile
import unittest
from unittest.mock import patch

from sponsor_api.flatfile import (
    SPONSORS_FILE,
    TEAMS_FILE,
    JsonFileRepository,
    generate_local_id,
)
from sponsor_api.records import RecordNotFoundError
from sponsor_api.types import UNASSIGNED, SponsorQuery


def sponsor_doc(name: str, **overrides) -> dict:
    doc = {
        "companyName": name,
        "companyEmail": f"hello@{name.lower()}.test",
        "contactPerson": "Jane Doe",
        "phoneNumber": "555-0100",
        "location": "Cape Town",
        "status": "In Progress",
    }
    doc.update(overrides)
    return doc


class JsonFileRepositoryTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.data_dir = os.path.join(self._tmp.name, "data")
        self.store = JsonFileRepository(self.data_dir)

    def tearDown(self):
        self._tmp.cleanup()

    def _read(self, name):
        with open(os.path.join(self.data_dir, name), encoding="utf-8") as fh:
            return json.load(fh)

    def test_files_created_empty(self):
        self.assertEqual(self._read(SPONSORS_FILE), [])
        self.assertEqual(self._read(TEAMS_FILE), [])

    def test_existing_files_are_kept(self):
        self.store.create_team({"name": "Alpha", "members": []})
        reopened = JsonFileRepository(self.data_dir)
        self.assertEqual([t.name for t in reopened.list_teams()], ["Alpha"])

    def test_create_persists_and_assigns_id(self):
        created = self.store.create_sponsor(sponsor_doc("Acme"))
        self.assertTrue(created.id)
        stored = self._read(SPONSORS_FILE)
        self.assertEqual(len(stored), 1)
        self.assertEqual(stored[0]["id"], created.id)
        self.assertEqual(stored[0]["companyName"], "Acme")

    def test_create_does_not_revalidate(self):
        created = self.store.create_sponsor({"companyName": "Bare"})
        self.assertEqual(created.status, "In Progress")
        self.assertIsNone(created.company_email)

    def test_generated_ids_are_unique(self):
        ids = {generate_local_id() for _ in range(500)}
        self.assertEqual(len(ids), 500)

    def test_corrupt_file_reads_as_empty(self):
        with open(os.path.join(self.data_dir, SPONSORS_FILE), "w", encoding="utf-8") as fh:
            fh.write("{not json")
        page = self.store.find_sponsors(SponsorQuery())
        self.assertEqual(page.items, [])
        self.assertEqual(page.total, 0)

    def test_non_array_file_reads_as_empty(self):
        with open(os.path.join(self.data_dir, TEAMS_FILE), "w", encoding="utf-8") as fh:
            json.dump({"teams": []}, fh)
        self.assertEqual(self.store.list_teams(), [])

    def test_missing_file_reads_as_empty(self):
        os.remove(os.path.join(self.data_dir, SPONSORS_FILE))
        self.assertEqual(self.store.find_sponsors(SponsorQuery()).total, 0)

    def test_filter_sort_and_paginate(self):
        team = self.store.create_team({"name": "Alpha", "members": ["Ann"]})
        self.store.create_sponsor(sponsor_doc("Acme", assignedTeam=team.id))
        self.store.create_sponsor(sponsor_doc("Globex", status="Completed"))
        self.store.create_sponsor(sponsor_doc("Initech", contactPerson="Bill Lumbergh"))

        everything = self.store.find_sponsors(SponsorQuery())
        self.assertEqual(
            [s.company_name for s in everything.items], ["Initech", "Globex", "Acme"]
        )
        completed = self.store.find_sponsors(SponsorQuery(status="Completed"))
        self.assertEqual([s.company_name for s in completed.items], ["Globex"])
        self.assertEqual(completed.total, 1)

        searched = self.store.find_sponsors(SponsorQuery(search="lumb"))
        self.assertEqual([s.company_name for s in searched.items], ["Initech"])

        unassigned = self.store.find_sponsors(SponsorQuery(team=UNASSIGNED))
        self.assertEqual([s.company_name for s in unassigned.items], ["Initech", "Globex"])

        by_team = self.store.find_sponsors(SponsorQuery(team=team.id))
        self.assertEqual(by_team.items[0].as_dict()["assignedTeam"]["members"], ["Ann"])

        second = self.store.find_sponsors(SponsorQuery(page=2, limit=2))
        self.assertEqual([s.company_name for s in second.items], ["Acme"])
        self.assertEqual(second.pagination(), {"total": 3, "page": 2, "pages": 2, "limit": 2})

    def test_update_merges_fields(self):
        created = self.store.create_sponsor(sponsor_doc("Acme", notes="hi"))
        updated = self.store.update_sponsor(created.id, {"status": "Cold Call"})
        self.assertEqual(updated.status, "Cold Call")
        self.assertEqual(updated.notes, "hi")
        self.assertEqual(updated.id, created.id)
        with self.assertRaises(RecordNotFoundError):
            self.store.update_sponsor("missing", {"status": "Cold Call"})

    def test_delete(self):
        created = self.store.create_sponsor(sponsor_doc("Acme"))
        self.store.delete_sponsor(created.id)
        self.assertEqual(self._read(SPONSORS_FILE), [])
        with self.assertRaises(RecordNotFoundError):
            self.store.delete_sponsor(created.id)

    def test_delete_team_clears_references(self):
        team = self.store.create_team({"name": "Alpha", "members": []})
        other = self.store.create_team({"name": "Beta", "members": []})
        acme = self.store.create_sponsor(sponsor_doc("Acme", assignedTeam=team.id))
        globex = self.store.create_sponsor(sponsor_doc("Globex", assignedTeam=other.id))

        self.assertEqual(self.store.delete_team(team.id), 1)
        self.assertIsNone(self.store.get_sponsor(acme.id).assigned_team)
        self.assertEqual(self.store.get_sponsor(globex.id).assigned_team, other.id)
        self.assertEqual([t.name for t in self.store.list_teams()], ["Beta"])

    def test_write_failure_propagates_and_keeps_file(self):
        self.store.create_sponsor(sponsor_doc("Acme"))
        before = self._read(SPONSORS_FILE)
        with patch("sponsor_api.flatfile.os.replace", side_effect=OSError("disk full")):
            with self.assertRaises(OSError):
                self.store.create_sponsor(sponsor_doc("Globex"))
        self.assertEqual(self._read(SPONSORS_FILE), before)

    def test_update_team(self):
        team = self.store.create_team({"name": "Alpha", "members": ["Ann"]})
        updated = self.store.update_team(team.id, {"name": "Alpha Squad"})
        self.assertEqual(updated.name, "Alpha Squad")
        self.assertEqual(updated.members, ["Ann"])
        with self.assertRaises(RecordNotFoundError):
            self.store.update_team("missing", {"name": "x"})


if __name__ == "__main__":
    unittest.main()
