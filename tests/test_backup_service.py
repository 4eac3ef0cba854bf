"""Tests for BackupService, wired the same way main.create_context() wires it."""

from __future__ import annotations

import json
from datetime import timedelta
from pathlib import Path
from typing import Iterator
from unittest.mock import MagicMock

import pytest

from journey_wallet.config import Config
from journey_wallet.context import AppContext
from journey_wallet.errors import (
    DevBackupOnProdBuild,
    IncompatibleSchema,
    MalformedSnapshot,
    RemoteUnavailable,
    RestoreFailed,
)
from journey_wallet.models.entities import EntityType
from journey_wallet.models.snapshot import UserPreferences
from journey_wallet.utils import utcnow
from main import create_context


@pytest.fixture
def sync_folder(tmp_path: Path) -> Path:
    folder = tmp_path / "cloud"
    folder.mkdir()
    return folder


@pytest.fixture
def make_ctx(tmp_path: Path, sync_folder: Path) -> Iterator:
    """Factory for contexts with their own data dir, sharing one sync folder."""
    contexts: list[AppContext] = []

    def factory(
        name: str = "device", dev_mode: bool = False, sync: bool = True, check_url: str = "",
        task_scheduler: MagicMock | None = None,
    ) -> AppContext:
        config = Config(tmp_path / name)
        with config.batch_update():
            config.set("device_name", name)
            config.set("dev_mode", dev_mode)
            config.set("export_dir", str(tmp_path / name / "exports"))
            config.set("sync_folder", str(sync_folder) if sync else "")
            config.set("network_probe_url", check_url)
        ctx = create_context(config, task_scheduler=task_scheduler or MagicMock())
        contexts.append(ctx)
        return ctx

    yield factory
    for ctx in contexts:
        ctx.store.close()


class TestExportImport:
    def test_round_trip_between_devices(
        self, make_ctx, make_journey, fill, sample_records, dump_store
    ) -> None:
        laptop = make_ctx("laptop")
        fill(laptop.store, sample_records)
        laptop.store.save_preferences(UserPreferences("€", "de"))
        phone = make_ctx("phone")
        phone.store.insert(EntityType.JOURNEYS, make_journey("OLD"))

        path = laptop.backup_service.export_to_file()
        assert path.name.startswith("journey_wallet_export_")
        assert phone.backup_service.preview_file(path).device_name == "laptop"

        result = phone.backup_service.import_from_file(path)

        assert result.total_inserted == sum(len(v) for v in sample_records.values())
        assert dump_store(phone.store) == dump_store(laptop.store)

    def test_malformed_file_has_no_side_effects(
        self, make_ctx, tmp_path: Path, fill, sample_records, dump_store
    ) -> None:
        ctx = make_ctx()
        fill(ctx.store, sample_records)
        before = dump_store(ctx.store)
        bad = tmp_path / "broken.json"
        bad.write_text('{"metadata": {"createdAt": "2026-01-01T00:00:00Z"')

        with pytest.raises(MalformedSnapshot):
            ctx.backup_service.import_from_file(bad)

        assert dump_store(ctx.store) == before
        assert ctx.restorer.list_safety_backups() == []

    def test_newer_schema_rejected(self, make_ctx, fill, sample_records, dump_store) -> None:
        ctx = make_ctx()
        fill(ctx.store, sample_records)
        before = dump_store(ctx.store)
        path = ctx.backup_service.export_to_file()
        document = json.loads(path.read_text(encoding="utf-8"))
        document["metadata"]["databaseSchemaVersion"] += 1
        path.write_text(json.dumps(document), encoding="utf-8")

        with pytest.raises(IncompatibleSchema):
            ctx.backup_service.import_from_file(path)
        assert dump_store(ctx.store) == before


class TestRemoteBackups:
    def test_backup_list_restore_cycle(
        self, make_ctx, make_journey, fill, sample_records, dump_store
    ) -> None:
        ctx = make_ctx()
        fill(ctx.store, sample_records)
        before = dump_store(ctx.store)

        record = ctx.backup_service.create_remote_backup()
        assert ctx.backup_service.list_remote_backups() == [record]
        assert ctx.backup_service.find_remote_backup(record.file_name) == record
        assert ctx.backup_service.find_remote_backup("nope.json") is None

        ctx.store.wipe_all()
        ctx.store.insert(EntityType.JOURNEYS, make_journey("NEW"))
        ctx.backup_service.restore_remote_backup(record)

        assert dump_store(ctx.store) == before

    def test_retention_applied_after_backup(self, make_ctx, sync_folder: Path) -> None:
        ctx = make_ctx()
        backup_dir = sync_folder / "journey_wallet" / "backups"
        backup_dir.mkdir(parents=True)
        for days in range(1, 6):
            data = ctx.codec.encode(ctx.store, "1.0", "old", now=utcnow() - timedelta(days=days))
            (backup_dir / f"journey_wallet_backup_old-{days}.json").write_bytes(data)

        record = ctx.backup_service.create_remote_backup()

        remaining = ctx.backup_service.list_remote_backups()
        assert len(remaining) == 5
        assert remaining[0] == record
        assert not (backup_dir / "journey_wallet_backup_old-5.json").exists()

    def test_corrupted_backup_leaves_local_data_intact(self, make_ctx, make_journey) -> None:
        ctx = make_ctx()
        ctx.store.insert(EntityType.JOURNEYS, make_journey("J1"))
        record = ctx.backup_service.create_remote_backup()
        ctx.store.insert(EntityType.JOURNEYS, make_journey("J2"))
        record.path.write_bytes(b"\x00corrupted")

        with pytest.raises(RestoreFailed) as exc_info:
            ctx.backup_service.restore_remote_backup(record)

        assert isinstance(exc_info.value.cause, MalformedSnapshot)
        assert [j.id for j in ctx.store.fetch_all(EntityType.JOURNEYS)] == ["J1", "J2"]

    def test_dev_backup_refused_on_production_build(self, make_ctx, make_journey) -> None:
        dev = make_ctx("dev", dev_mode=True)
        dev.store.insert(EntityType.JOURNEYS, make_journey("DEV"))
        record = dev.backup_service.create_remote_backup()
        assert record.is_dev_backup

        prod = make_ctx("prod")
        prod.store.insert(EntityType.JOURNEYS, make_journey("PROD"))
        with pytest.raises(DevBackupOnProdBuild):
            prod.backup_service.restore_remote_backup(record)
        assert [j.id for j in prod.store.fetch_all(EntityType.JOURNEYS)] == ["PROD"]
        assert prod.restorer.list_safety_backups() == []

    def test_dev_backup_allowed_on_dev_build(self, make_ctx, make_journey) -> None:
        dev = make_ctx("dev", dev_mode=True)
        dev.store.insert(EntityType.JOURNEYS, make_journey("DEV"))
        record = dev.backup_service.create_remote_backup()

        other = make_ctx("dev2", dev_mode=True)
        other.backup_service.restore_remote_backup(record)
        assert [j.id for j in other.store.fetch_all(EntityType.JOURNEYS)] == ["DEV"]

    def test_delete(self, make_ctx) -> None:
        ctx = make_ctx()
        record = ctx.backup_service.create_remote_backup()
        ctx.backup_service.delete_remote_backup(record)
        assert ctx.backup_service.list_remote_backups() == []
        assert ctx.backup_service.delete_all_remote_backups() == 0

    def test_remote_unavailable(self, make_ctx) -> None:
        ctx = make_ctx(sync=False)
        assert ctx.backup_service.is_remote_available() is False
        with pytest.raises(RemoteUnavailable):
            ctx.backup_service.create_remote_backup()


class TestAutomaticBackup:
    def test_invalid_check_url_does_not_stop_the_schedule(self, make_ctx) -> None:
        tasks = MagicMock()
        ctx = make_ctx(check_url="http://sync\x00.example", task_scheduler=tasks)
        ctx.scheduler.enabled = True
        tasks.reset_mock()

        assert ctx.backup_service.is_remote_available() is False
        assert ctx.scheduler.handle_scheduled_backup() is False
        assert ctx.scheduler.pending_retry is True
        tasks.submit.assert_called_once()

    def test_scheduled_backup_lands_in_sync_folder(self, make_ctx) -> None:
        ctx = make_ctx()
        ctx.scheduler.enabled = True

        assert ctx.scheduler.handle_scheduled_backup() is True
        assert len(ctx.backup_service.list_remote_backups()) == 1
        assert ctx.scheduler.state.last_automatic_backup_date is not None
