"""
Tests for StateStore — in-memory cache mirrored to SQLite.
"""

import pytest

from lib import db as db_module
from lib import schema
from lib.records import build_record
from lib.state_store import SNAPSHOT_FORMAT, StateStore, get_store, reset_store
from tests.factories import farm_payload, lab_payload, prescription_payload, treatment_payload


def _add(store, slug, payload):
    record = build_record(slug, payload)
    store.add(slug, record)
    return record


@pytest.fixture
def farm(store):
    return _add(store, "farms", farm_payload())


class TestSchema:
    def test_tables_created(self, store):
        with db_module.get_connection(store.db_path) as conn:
            for table in schema.TABLES:
                assert db_module.table_exists(conn, table)
            assert db_module.get_schema_version(conn) == schema.SCHEMA_VERSION

    def test_db_info(self, store):
        info = db_module.get_db_info(store.db_path)
        assert info["exists"] is True
        assert info["user_version"] == schema.SCHEMA_VERSION
        assert info["file_size"] > 0

    def test_migrations_idempotent(self, store):
        result = db_module.run_startup_migrations(store.db_path)
        assert not result.get("tables_created")
        assert not result.get("columns_added")


class TestCrud:
    def test_add_and_get(self, store, farm):
        got = store.get("farms", farm["id"])
        assert got["name"] == "Godavari Shrimp Farm"
        assert store.count("farms") == 1

    def test_get_missing(self, store):
        assert store.get("farms", "farm-missing") is None

    def test_get_returns_copy(self, store, farm):
        store.get("farms", farm["id"])["name"] = "changed"
        assert store.get("farms", farm["id"])["name"] == "Godavari Shrimp Farm"

    def test_add_requires_id(self, store):
        with pytest.raises(ValueError, match="id"):
            store.add("farms", {"name": "x"})

    def test_newest_first(self, store):
        first = _add(store, "farms", farm_payload(name="First"))
        second = _add(store, "farms", farm_payload(name="Second"))
        assert [f["id"] for f in store.list("farms")] == [second["id"], first["id"]]

    def test_list_by_farm(self, store, farm):
        other = _add(store, "farms", farm_payload(name="Other"))
        _add(store, "treatments", treatment_payload(farm["id"]))
        _add(store, "treatments", treatment_payload(other["id"]))
        assert len(store.list("treatments")) == 2
        assert [t["farm_id"] for t in store.list("treatments", farm_id=farm["id"])] == [farm["id"]]

    def test_unknown_farm_violates_foreign_key(self, store):
        with pytest.raises(ValueError, match="Cannot save"):
            store.add("treatments", build_record("treatments", treatment_payload("farm-nope")))

    def test_persists_across_instances(self, store, farm):
        _add(store, "treatments", treatment_payload(farm["id"]))
        reopened = StateStore(db_path=store.db_path)
        assert reopened.get("farms", farm["id"])["name"] == farm["name"]
        assert reopened.count("treatments") == 1

    def test_unknown_kind(self, store):
        with pytest.raises(ValueError):
            store.list("ponds")


class TestDelete:
    def test_delete(self, store, farm):
        assert store.delete("farms", farm["id"]) is True
        assert store.get("farms", farm["id"]) is None

    def test_delete_missing(self, store):
        assert store.delete("farms", "farm-missing") is False

    def test_farm_delete_cascades(self, store, farm):
        rx = _add(store, "prescriptions", prescription_payload(farm["id"]))
        _add(store, "treatments", treatment_payload(farm["id"], prescription_id=rx["id"]))
        _add(store, "lab-results", lab_payload(farm["id"]))

        store.delete("farms", farm["id"])

        for slug in ("treatments", "prescriptions", "lab-results"):
            assert store.count(slug) == 0
        reopened = StateStore(db_path=store.db_path)
        assert reopened.count("treatments") == 0

    def test_prescription_delete_unlinks_treatments(self, store, farm):
        rx = _add(store, "prescriptions", prescription_payload(farm["id"]))
        trt = _add(store, "treatments", treatment_payload(farm["id"], prescription_id=rx["id"]))

        store.delete("prescriptions", rx["id"])

        assert store.get("treatments", trt["id"])["prescription_id"] is None
        reopened = StateStore(db_path=store.db_path)
        assert reopened.get("treatments", trt["id"])["prescription_id"] is None

    def test_clear(self, store, farm):
        rx = _add(store, "prescriptions", prescription_payload(farm["id"]))
        _add(store, "treatments", treatment_payload(farm["id"], prescription_id=rx["id"]))
        store.clear()
        assert all(store.count(slug) == 0 for slug in ("farms", "treatments", "prescriptions"))
        assert StateStore(db_path=store.db_path).count("farms") == 0


class TestSnapshot:
    def test_export_shape(self, store, farm):
        snap = store.export_snapshot()
        assert snap["format"] == SNAPSHOT_FORMAT
        assert snap["schema_version"] == schema.SCHEMA_VERSION
        assert [f["id"] for f in snap["farms"]] == [farm["id"]]
        assert snap["lab-results"] == []

    def test_import_replaces(self, store, farm, tmp_path):
        rx = _add(store, "prescriptions", prescription_payload(farm["id"]))
        _add(store, "treatments", treatment_payload(farm["id"], prescription_id=rx["id"]))
        snap = store.export_snapshot()

        other = StateStore(db_path=tmp_path / "other.db")
        _add(other, "farms", farm_payload(name="To be replaced"))
        counts = other.import_snapshot(snap)

        assert counts == {"farms": 1, "prescriptions": 1, "treatments": 1, "lab-results": 0}
        assert [f["name"] for f in other.list("farms")] == ["Godavari Shrimp Farm"]

    def test_import_merge(self, store, farm, tmp_path):
        snap = store.export_snapshot()
        other = StateStore(db_path=tmp_path / "other.db")
        _add(other, "farms", farm_payload(name="Kept"))
        other.import_snapshot(snap, replace=False)
        assert other.count("farms") == 2

    def test_import_rejects_foreign_format(self, store):
        with pytest.raises(ValueError, match="snapshot"):
            store.import_snapshot({"farms": []})

    def test_import_rejects_entry_without_id(self, store):
        with pytest.raises(ValueError, match="without id"):
            store.import_snapshot({"format": SNAPSHOT_FORMAT, "farms": [{"name": "x"}]})

    def test_import_rejects_dangling_reference(self, store, farm):
        snap = store.export_snapshot()
        snap["treatments"] = [
            build_record("treatments", treatment_payload("farm-gone")),
        ]
        with pytest.raises(ValueError, match="inconsistent"):
            store.import_snapshot(snap)
        # failed import leaves existing data in place
        assert store.get("farms", farm["id"]) is not None

    @pytest.mark.parametrize(
        "override,field",
        [
            ({"end_date": "01/05/2025"}, "end_date"),
            ({"withdrawal_days": -3}, "withdrawal_days"),
            ({"withdrawal_days": None}, "withdrawal_days"),
        ],
    )
    def test_import_rejects_invalid_treatment(self, store, farm, override, field):
        treatment = _add(store, "treatments", treatment_payload(farm["id"]))
        snap = store.export_snapshot()
        snap["treatments"][0].update(override)

        with pytest.raises(ValueError, match=f"treatments record {treatment['id']}.*{field}"):
            store.import_snapshot(snap)
        # nothing was wiped
        assert store.get("treatments", treatment["id"])["end_date"] == "2025-03-07"

    def test_import_keeps_ids_and_normalises(self, store, farm, tmp_path):
        lab = _add(store, "lab-results", lab_payload(farm["id"]))
        snap = store.export_snapshot()
        snap["lab-results"][0].update({"outcome": None, "value": 150, "sample_type": "WATER"})

        other = StateStore(db_path=tmp_path / "other.db")
        other.import_snapshot(snap)
        row = other.get("lab-results", lab["id"])
        assert row["created_at"] == lab["created_at"]
        assert row["sample_type"] == "water"
        assert row["outcome"] == "fail"


class TestSingleton:
    def test_get_store_uses_app_home(self, isolated_home):
        store = get_store()
        assert store is get_store()
        assert store.db_path.is_relative_to(isolated_home.resolve())

    def test_reset_store(self):
        first = get_store()
        reset_store()
        assert get_store() is not first

    def test_db_env_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("AMU_MONITOR_DB", str(tmp_path / "custom.db"))
        reset_store()
        assert get_store().db_path == (tmp_path / "custom.db").resolve()
        with db_module.get_connection(tmp_path / "custom.db") as conn:
            assert db_module.table_exists(conn, "farms")


class TestReload:
    def test_reload_picks_up_other_writers(self, store):
        other = StateStore(db_path=store.db_path)
        _add(other, "farms", farm_payload(name="Written elsewhere"))
        assert store.count("farms") == 0
        store.reload()
        assert store.list("farms")[0]["name"] == "Written elsewhere"
