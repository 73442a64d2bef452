"""
Tests for SQLite storage: report/author writes and the cursor query.
"""

import sqlite3
from pathlib import Path

import pytest

from conftest import make_result
from models import Record, author_hash
from storage.db import Storage


def _insert(storage, contribution_id, **kw):
    record = Record.from_json(make_result(contribution_id, **kw))
    storage.insert_report(record, url=record.url, image_url=record.photo_url, lang="id")
    return record


class TestReports:
    def test_empty_max_is_none(self, tmp_storage):
        assert tmp_storage.max_contribution_id() is None

    def test_max_contribution_id(self, tmp_storage):
        for cid in (3, 9, 5):
            _insert(tmp_storage, cid)
        assert tmp_storage.max_contribution_id() == 9

    def test_duplicate_contribution_rejected(self, tmp_storage):
        _insert(tmp_storage, 7)
        with pytest.raises(sqlite3.IntegrityError):
            _insert(tmp_storage, 7)
        assert tmp_storage.get_stats()["total_reports"] == 1

    def test_row_contents(self, tmp_storage):
        record = _insert(tmp_storage, 11)
        row = tmp_storage.execute(
            "SELECT * FROM detik_reports WHERE contribution_id = ?", (11,)
        )[0]
        assert row["title"] == record.title
        assert row["lang"] == "id"
        assert row["user_hash"] == author_hash(record.author_id)
        assert row["created_at"] == record.created_at.isoformat()


class TestAuthors:
    def test_upsert_counts_contributions(self, tmp_storage):
        first = Record.from_json(make_result(3))
        second = Record.from_json(make_result(6))
        assert first.author_id == second.author_id

        tmp_storage.upsert_author(first)
        tmp_storage.upsert_author(second)

        rows = tmp_storage.execute("SELECT user_hash, contributions FROM detik_users")
        assert len(rows) == 1
        assert rows[0]["user_hash"] == author_hash(first.author_id)
        assert rows[0]["contributions"] == 2


class TestStorage:
    def test_custom_table_names(self, tmp_path):
        storage = Storage(tmp_path / "custom.db", "reports_x", "users_x")
        try:
            _insert(storage, 1)
            assert storage.execute("SELECT COUNT(*) FROM reports_x")[0][0] == 1
        finally:
            storage.close()

    def test_creates_parent_directory(self, tmp_path):
        storage = Storage(Path(tmp_path) / "nested" / "dir" / "detik.db")
        storage.close()
        assert (tmp_path / "nested" / "dir" / "detik.db").exists()

    def test_bad_statement_raises(self, tmp_storage):
        with pytest.raises(sqlite3.Error):
            tmp_storage.execute("SELECT * FROM no_such_table")

    def test_stats(self, tmp_storage):
        record = _insert(tmp_storage, 4)
        tmp_storage.upsert_author(record)
        assert tmp_storage.get_stats() == {
            "total_reports": 1,
            "total_users": 1,
            "max_contribution_id": 4,
        }
