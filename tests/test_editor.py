#!/usr/bin/env python3
"""Tests for edit sessions, field mutations and delete confirmation."""

import pytest

from records import (
    DeleteConfirmation,
    MemoryRecordStore,
    MutationKind,
    PersistenceError,
    RecordEditor,
    ServiceCategory,
    ServiceItem,
    begin_edit,
    build_patch,
    normalize_record,
    parse_field_path,
    set_field,
    toggle_service_flag,
)
from records.catalog import CHASSIS_SERVICES, ENGINE_SERVICES

SCOPE = "artifacts/test-app/public/data/vehicleServices"


class FailingStore(MemoryRecordStore):
    """Memory store whose writes can be switched off."""

    def __init__(self):
        super().__init__()
        self.fail = False

    def update(self, scope_key, record_id, data):
        if self.fail:
            raise PersistenceError("backend unavailable")
        return super().update(scope_key, record_id, data)

    def delete(self, scope_key, record_id):
        if self.fail:
            raise PersistenceError("backend unavailable")
        return super().delete(scope_key, record_id)


def make_raw(**overrides):
    raw = {
        "id": "rec-1",
        "regNumber": "AB123",
        "brand": "Toyota",
        "model": "Corolla",
        "year": "2018",
        "kilometers": "84000",
        "gearbox": "Auto",
        "motivePower": "Petrol",
        "driveMode": "Front",
        "engineServices": [
            {"type": "Oil change", "done": True, "urgent": False, "later": False},
            {"type": "Belt replacement", "done": False, "urgent": True, "later": False},
        ],
        "chassisServices": [
            {"type": "Front brake repair", "done": False, "urgent": False, "later": True},
        ],
        "vehicleScanning": [{"type": "OBD scan", "done": False, "urgent": False, "later": False}],
        "brakePercentages": {"frontLeft": "70", "frontRight": "72", "rearLeft": "60", "rearRight": "61"},
        "additionalInfo": "Customer waiting",
        "userId": "user-1",
        "timestamp": 1700000000,
    }
    raw.update(overrides)
    return raw


@pytest.fixture
def record():
    return normalize_record(make_raw())


# =============================================================================
# Field paths
# =============================================================================


class TestParseFieldPath:
    """Tests for parse_field_path."""

    def test_plain_field_is_scalar(self):
        mutation = parse_field_path("brand", "Honda")
        assert mutation.kind is MutationKind.SET_SCALAR
        assert mutation.target == "brand"
        assert mutation.value == "Honda"

    @pytest.mark.parametrize("corner", ["frontLeft", "frontRight", "rearLeft", "rearRight"])
    def test_brake_corner(self, corner):
        mutation = parse_field_path(f"brakePercentages.{corner}", "50")
        assert mutation.kind is MutationKind.SET_BRAKE_CORNER
        assert mutation.target == corner

    def test_scan_type(self):
        mutation = parse_field_path("vehicleScanning.type", "ABS scan")
        assert mutation.kind is MutationKind.SET_SCAN_TYPE

    def test_other_dotted_path_is_flat(self):
        mutation = parse_field_path("owner.name", "Kim")
        assert mutation.kind is MutationKind.SET_SCALAR
        assert mutation.target == "owner.name"

    def test_unknown_brake_corner_is_flat(self):
        mutation = parse_field_path("brakePercentages.spare", "10")
        assert mutation.kind is MutationKind.SET_SCALAR
        assert mutation.target == "brakePercentages.spare"


# =============================================================================
# Sessions
# =============================================================================


class TestBeginEdit:
    """The working copy is independent of the live record."""

    def test_nested_values_are_copied(self, record):
        session = begin_edit(record)
        session.working.engine_services[0].done = False
        session.working.vehicle_scanning[0].type = "changed"
        session.working.brake_percentages["frontLeft"] = "0"
        session.working.brand = "Honda"

        assert record.engine_services[0].done is True
        assert record.scan.type == "OBD scan"
        assert record.brake_percentages["frontLeft"] == "70"
        assert record.brand == "Toyota"

    def test_session_remembers_record_id(self, record):
        assert begin_edit(record).record_id == "rec-1"

    def test_legacy_record_gets_catalog_services(self):
        legacy = normalize_record({"id": "old", "regNumber": "ZZ1"})
        session = begin_edit(legacy)
        assert [s.type for s in session.working.engine_services] == list(ENGINE_SERVICES)
        assert [s.type for s in session.working.chassis_services] == list(CHASSIS_SERVICES)
        assert legacy.engine_services == []


class TestSetField:
    """Tests for set_field."""

    def test_scalar(self, record):
        session = set_field(begin_edit(record), "kilometers", "85000")
        assert session.working.kilometers == "85000"

    def test_brake_corner_changes_only_that_key(self, record):
        session = begin_edit(record)
        before = session.working.to_dict()

        set_field(session, "brakePercentages.rearRight", "40")
        after = session.working.to_dict()

        assert after["brakePercentages"] == {
            "frontLeft": "70",
            "frontRight": "72",
            "rearLeft": "60",
            "rearRight": "40",
        }
        before.pop("brakePercentages")
        after.pop("brakePercentages")
        assert after == before

    def test_scan_type_changes_only_index_zero(self, record):
        session = set_field(begin_edit(record), "vehicleScanning.type", "Airbag scan")
        assert session.working.vehicle_scanning == [ServiceItem("Airbag scan")]

    def test_unknown_dotted_path_sets_flat_field(self, record):
        session = set_field(begin_edit(record), "owner.name", "Kim")
        assert session.working.extra["owner.name"] == "Kim"
        assert build_patch(session)["owner.name"] == "Kim"

    @pytest.mark.parametrize("name", ["id", "userId", "timestamp"])
    def test_read_only_fields_rejected(self, record, name):
        with pytest.raises(ValueError):
            set_field(begin_edit(record), name, "x")

    @pytest.mark.parametrize(
        "name", ["brakePercentages", "engineServices", "chassisServices", "vehicleScanning"]
    )
    def test_nested_fields_cannot_be_replaced(self, record, name):
        session = begin_edit(record)
        before = session.working.to_dict()
        with pytest.raises(ValueError):
            set_field(session, name, "5")
        assert session.working.to_dict() == before
        assert name not in session.working.extra


class TestToggleServiceFlag:
    """Tests for toggle_service_flag."""

    def test_flips_one_flag_only(self, record):
        session = toggle_service_flag(begin_edit(record), "engineServices", 1, "later")
        assert session.working.engine_services[1] == ServiceItem(
            "Belt replacement", done=False, urgent=True, later=True
        )

    def test_self_inverse(self, record):
        session = begin_edit(record)
        original = session.working.to_dict()
        for _ in range(2):
            toggle_service_flag(session, ServiceCategory.CHASSIS, 0, "done")
        assert session.working.to_dict() == original

    @pytest.mark.parametrize("index", [2, 99, -1])
    def test_out_of_range_is_noop(self, record, index):
        session = begin_edit(record)
        original = session.working.to_dict()
        result = toggle_service_flag(session, "engineServices", index, "done")
        assert result is session
        assert session.working.to_dict() == original

    def test_scan_entry_flag(self, record):
        session = toggle_service_flag(begin_edit(record), "vehicleScanning", 0, "urgent")
        assert session.working.scan.urgent is True

    def test_unknown_flag_rejected(self, record):
        with pytest.raises(ValueError):
            toggle_service_flag(begin_edit(record), "engineServices", 0, "type")

    def test_unknown_category_rejected(self, record):
        with pytest.raises(ValueError):
            toggle_service_flag(begin_edit(record), "bodyServices", 0, "done")


class TestBuildPatch:
    """The patch is the whole edited document."""

    def test_includes_every_field(self, record):
        patch = build_patch(set_field(begin_edit(record), "brand", "Honda"))
        expected = make_raw(brand="Honda")
        expected.pop("id")
        assert patch == expected

    def test_patch_is_detached_from_session(self, record):
        session = begin_edit(record)
        patch = build_patch(session)
        patch["brakePercentages"]["frontLeft"] = "1"
        assert session.working.brake_percentages["frontLeft"] == "70"


# =============================================================================
# Saving
# =============================================================================


class TestRecordEditor:
    """Tests for RecordEditor commit and cancel."""

    @pytest.fixture
    def store(self):
        return FailingStore()

    @pytest.fixture
    def stored(self, store):
        record_id = store.create(SCOPE, make_raw())
        return normalize_record(store.snapshot(SCOPE)[0]), record_id

    def test_commit_overwrites_whole_record(self, store, stored):
        record, record_id = stored
        editor = RecordEditor(store, SCOPE)
        editor.begin_edit(record)
        editor.set_field("kilometers", "90000")

        patch = editor.commit()

        assert patch["kilometers"] == "90000"
        saved = store.snapshot(SCOPE)[0]
        assert saved["kilometers"] == "90000"
        assert saved["id"] == record_id
        assert saved["userId"] == "user-1"
        assert editor.session is None

    def test_failed_commit_keeps_session(self, store, stored):
        record, _ = stored
        editor = RecordEditor(store, SCOPE)
        editor.begin_edit(record)
        editor.set_field("brand", "Honda")
        store.fail = True

        with pytest.raises(PersistenceError):
            editor.commit()

        assert editor.editing
        assert editor.session.working.brand == "Honda"
        assert store.snapshot(SCOPE)[0]["brand"] == "Toyota"

    def test_retry_after_failure(self, store, stored):
        record, _ = stored
        editor = RecordEditor(store, SCOPE)
        editor.begin_edit(record)
        editor.set_field("brand", "Honda")
        store.fail = True
        with pytest.raises(PersistenceError):
            editor.commit()

        store.fail = False
        editor.commit()
        assert store.snapshot(SCOPE)[0]["brand"] == "Honda"

    def test_cancel_discards_without_writing(self, store, stored):
        record, _ = stored
        editor = RecordEditor(store, SCOPE)
        editor.begin_edit(record)
        editor.set_field("brand", "Honda")
        editor.cancel()
        assert editor.session is None
        assert store.snapshot(SCOPE)[0]["brand"] == "Toyota"

    def test_mutations_require_session(self, store):
        editor = RecordEditor(store, SCOPE)
        with pytest.raises(RuntimeError):
            editor.set_field("brand", "Honda")


class TestDeleteConfirmation:
    """Idle -> pending -> Idle."""

    @pytest.fixture
    def store(self):
        store = FailingStore()
        store.create(SCOPE, make_raw())
        return store

    def test_starts_idle(self):
        assert not DeleteConfirmation().is_pending

    def test_cancel_has_no_side_effect(self, store):
        record_id = store.snapshot(SCOPE)[0]["id"]
        deletion = DeleteConfirmation()
        deletion.request(record_id)
        deletion.cancel()
        assert not deletion.is_pending
        assert len(store.snapshot(SCOPE)) == 1

    def test_confirm_deletes(self, store):
        record_id = store.snapshot(SCOPE)[0]["id"]
        deletion = DeleteConfirmation()
        deletion.request(record_id)
        assert deletion.confirm(store, SCOPE) == record_id
        assert store.snapshot(SCOPE) == []
        assert not deletion.is_pending

    def test_confirm_when_idle_does_nothing(self, store):
        assert DeleteConfirmation().confirm(store, SCOPE) is None
        assert len(store.snapshot(SCOPE)) == 1

    def test_new_request_replaces_pending(self):
        deletion = DeleteConfirmation()
        deletion.request("a")
        deletion.request("b")
        assert deletion.pending_id == "b"

    def test_failed_confirm_keeps_pending(self, store):
        record_id = store.snapshot(SCOPE)[0]["id"]
        deletion = DeleteConfirmation()
        deletion.request(record_id)
        store.fail = True
        with pytest.raises(PersistenceError):
            deletion.confirm(store, SCOPE)
        assert deletion.pending_id == record_id
