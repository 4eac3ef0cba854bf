"""Tests for RetentionPolicy."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

from journey_wallet.core.retention import RetentionPolicy
from journey_wallet.models.backup_record import BackupRecord

NOW = datetime(2026, 10, 17, 12, 0, tzinfo=timezone.utc)


def _record(age: timedelta) -> BackupRecord:
    created = NOW - age
    return BackupRecord(path=Path(f"/backups/b_{created:%Y%m%d%H%M%S}.json"), created_at=created)


def _records(*days: int) -> list[BackupRecord]:
    return [_record(timedelta(days=d)) for d in days]


class TestSelectExpired:
    def test_age_and_count_combined(self) -> None:
        records = _records(40, 31, 10, 5, 3, 1, 0)
        expired = RetentionPolicy().select_expired(records, now=NOW)

        assert sorted(r.created_at for r in expired) == [NOW - timedelta(days=40), NOW - timedelta(days=31)]
        assert len(records) - len(expired) == 5

    def test_count_only(self) -> None:
        records = _records(0, 1, 2, 3, 4, 5, 6)
        expired = RetentionPolicy().select_expired(records, now=NOW)
        assert [r.created_at for r in expired] == [NOW - timedelta(days=5), NOW - timedelta(days=6)]

    def test_age_only(self) -> None:
        expired = RetentionPolicy().select_expired(_records(0, 45), now=NOW)
        assert [r.created_at for r in expired] == [NOW - timedelta(days=45)]

    def test_exactly_max_age_is_kept(self) -> None:
        assert RetentionPolicy().select_expired(_records(30), now=NOW) == []

    def test_no_duplicates(self) -> None:
        # Every record is both too old and beyond the count limit
        policy = RetentionPolicy(max_age=timedelta(days=1), max_count=1)
        expired = policy.select_expired(_records(10, 11, 12), now=NOW)
        assert len(expired) == 2
        assert len({r.path for r in expired}) == 2

    def test_input_order_does_not_matter(self) -> None:
        forward = RetentionPolicy().select_expired(_records(0, 1, 2, 3, 4, 5), now=NOW)
        backward = RetentionPolicy().select_expired(_records(5, 4, 3, 2, 1, 0), now=NOW)
        assert forward == backward

    def test_empty(self) -> None:
        assert RetentionPolicy().select_expired([], now=NOW) == []


class TestApply:
    def test_deletes_expired(self) -> None:
        remote = MagicMock()
        remote.list.return_value = _records(0, 40)

        deleted = RetentionPolicy().apply(remote, now=NOW)

        assert [r.created_at for r in deleted] == [NOW - timedelta(days=40)]
        remote.delete.assert_called_once_with(deleted[0])

    def test_best_effort_on_delete_failure(self) -> None:
        remote = MagicMock()
        remote.list.return_value = _records(0, 40, 50)
        remote.delete.side_effect = [OSError("busy"), None]

        deleted = RetentionPolicy().apply(remote, now=NOW)

        assert remote.delete.call_count == 2
        assert len(deleted) == 1

    def test_list_failure_is_swallowed(self) -> None:
        remote = MagicMock()
        remote.list.side_effect = OSError("offline")
        assert RetentionPolicy().apply(remote, now=NOW) == []
        remote.delete.assert_not_called()
