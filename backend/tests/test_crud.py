"""Tests for the CrudOrchestrator."""

import threading
from unittest.mock import patch

import pytest

from modelforge.auth.permissions import Operation
from modelforge.auth.types import DenialReason, RequestContext, Role
from modelforge.errors import StorageError
from modelforge.persistence.memory import InMemoryStore
from modelforge.persistence.sqlite import SQLiteStore
from modelforge.services.crud import CrudOrchestrator
from modelforge.services.types import GENERIC_FAILURE_MESSAGE, ResultStatus
from modelforge.validation import ViolationCode


# ── Helpers ──────────────────────────────────────────────────────────────────


ADMIN = RequestContext.for_identity("admin-1", override_role=Role.ADMIN)
EDITOR = RequestContext.for_identity("editor-1", override_role=Role.EDITOR)
VIEWER = RequestContext.for_identity("viewer-1", override_role=Role.VIEWER)
ANONYMOUS = RequestContext()


CONTACT = {
    "name": "Contact",
    "description": "People",
    "fields": [
        {"name": "name", "type": "string", "required": True},
        {"name": "email", "type": "email", "required": True},
        {"name": "age", "type": "number"},
        {"name": "active", "type": "boolean", "defaultValue": True},
    ],
}


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def crud(store):
    return CrudOrchestrator.from_store(store)


def create_contact_model(crud) -> str:
    result = crud.create_model(ADMIN, CONTACT)
    assert result.ok, result.message
    return result.data["id"]


# ── Models ───────────────────────────────────────────────────────────────────


class TestModels:
    def test_create_and_get(self, crud):
        result = crud.create_model(EDITOR, CONTACT)
        assert result.status is ResultStatus.OK
        assert result.data["createdBy"] == "editor-1"
        assert [f["name"] for f in result.data["fields"]] == ["name", "email", "age", "active"]

        fetched = crud.get_model(VIEWER, result.data["id"])
        assert fetched.data == result.data

    def test_viewer_cannot_create(self, crud, store):
        result = crud.create_model(VIEWER, CONTACT)
        assert result.status is ResultStatus.DENIED
        assert result.decision.reason is DenialReason.ROLE_NOT_ALLOWED
        assert result.to_dict()["redirectTo"] == "/dashboard"
        assert store.list_models() == []

    def test_anonymous_is_sent_to_sign_in(self, crud):
        result = crud.list_models(ANONYMOUS)
        assert result.status is ResultStatus.DENIED
        assert result.message == "Authentication required"
        assert result.to_dict()["redirectTo"] == "/auth"

    def test_invalid_model_input(self, crud, store):
        result = crud.create_model(ADMIN, {"name": "Bad", "fields": [{"name": "x", "type": "currency"}]})
        assert result.status is ResultStatus.INVALID
        assert "currency" in result.message
        assert store.list_models() == []

    def test_empty_model_name(self, crud):
        assert crud.create_model(ADMIN, {"name": "  "}).status is ResultStatus.INVALID

    @pytest.mark.parametrize(
        "model_input",
        [
            {"name": "Bad", "fields": [{"name": "a", "type": "string", "orderIndex": "first"}]},
            {"name": "Bad", "fields": [{"name": "a", "type": ["string"]}]},
            {"name": "Bad", "fields": [{"name": "a", "type": "string", "required": "sometimes"}]},
            {"name": "Bad", "description": 5},
            {"name": "Bad", "fields": "a,b"},
        ],
        ids=["order-index", "type-list", "required-token", "description", "fields-string"],
    )
    def test_malformed_model_input_is_invalid(self, crud, store, model_input):
        assert crud.create_model(ADMIN, model_input).status is ResultStatus.INVALID
        assert store.list_models() == []

    def test_required_flag_parsed_as_boolean(self, crud):
        result = crud.create_model(
            ADMIN, {"name": "Flags", "fields": [{"name": "a", "required": "false"}, {"name": "b", "required": "yes"}]}
        )
        assert result.ok
        assert [f["required"] for f in result.data["fields"]] == [False, True]

    def test_malformed_update_input_is_invalid(self, crud):
        model_id = create_contact_model(crud)
        result = crud.update_model(ADMIN, model_id, {"name": "Contact", "description": ["x"]})
        assert result.status is ResultStatus.INVALID

    def test_list_newest_first(self, crud):
        first = crud.create_model(ADMIN, {"name": "First"}).data["id"]
        second = crud.create_model(ADMIN, {"name": "Second"}).data["id"]
        result = crud.list_models(VIEWER)
        assert [m["id"] for m in result.data] == [second, first]
        assert "fields" not in result.data[0]

    def test_get_missing(self, crud):
        result = crud.get_model(VIEWER, "missing")
        assert result.status is ResultStatus.NOT_FOUND
        assert result.message == "Model 'missing' not found"

    def test_update_replaces_field_set(self, crud):
        model_id = create_contact_model(crud)
        result = crud.update_model(
            EDITOR,
            model_id,
            {"name": "Person", "fields": [{"name": "name", "type": "string", "required": True}]},
        )
        assert result.ok
        assert result.data["name"] == "Person"
        assert [f["name"] for f in result.data["fields"]] == ["name"]

    def test_update_invalid_input_leaves_model(self, crud):
        model_id = create_contact_model(crud)
        result = crud.update_model(
            ADMIN,
            model_id,
            {"name": "Contact", "fields": [{"name": "a", "type": "string"}, {"name": "a", "type": "text"}]},
        )
        assert result.status is ResultStatus.INVALID
        assert len(crud.get_model(ADMIN, model_id).data["fields"]) == 4

    def test_update_missing(self, crud):
        assert crud.update_model(ADMIN, "missing", {"name": "X"}).status is ResultStatus.NOT_FOUND

    def test_type_locked_once_records_exist(self, crud):
        model_id = create_contact_model(crud)
        crud.create_record(EDITOR, model_id, {"name": "Ada", "email": "ada@example.com"})

        fields = [dict(f) for f in CONTACT["fields"]]
        fields[2]["type"] = "text"
        result = crud.update_model(ADMIN, model_id, {"name": "Contact", "fields": fields})
        assert result.status is ResultStatus.CONFLICT
        assert "age" in result.message

    def test_type_change_allowed_without_records(self, crud):
        model_id = create_contact_model(crud)
        fields = [dict(f) for f in CONTACT["fields"]]
        fields[2]["type"] = "text"
        assert crud.update_model(ADMIN, model_id, {"name": "Contact", "fields": fields}).ok

    def test_partial_update_reported(self, crud, store, caplog):
        model_id = create_contact_model(crud)
        with patch.object(store, "_replace_fields", side_effect=RuntimeError("disk full")):
            result = crud.update_model(ADMIN, model_id, {"name": "Renamed", "fields": []})

        assert result.status is ResultStatus.PARTIAL
        assert model_id in result.message
        model = crud.get_model(ADMIN, model_id).data
        assert model["name"] == "Renamed"
        assert len(model["fields"]) == 4
        assert "renamed but its fields were not replaced" in caplog.text

    def test_sqlite_update_is_atomic(self, tmp_path):
        store = SQLiteStore(tmp_path / "t.db")
        store.connect()
        crud = CrudOrchestrator.from_store(store)
        model_id = create_contact_model(crud)

        with patch.object(store, "_insert_fields", side_effect=StorageError("boom")):
            result = crud.update_model(ADMIN, model_id, {"name": "Renamed", "fields": []})

        assert result.status is ResultStatus.FAILED
        assert crud.get_model(ADMIN, model_id).data["name"] == "Contact"
        store.close()

    def test_failed_update_survives_concurrent_commit(self, tmp_path):
        store = SQLiteStore(tmp_path / "t.db")
        store.connect()
        crud = CrudOrchestrator.from_store(store)
        model_id = create_contact_model(crud)
        other_id = crud.create_model(
            ADMIN, {"name": "Note", "fields": [{"name": "body", "type": "text"}]}
        ).data["id"]

        in_update = threading.Event()
        other_done = threading.Event()
        results = {}

        def slow_failure(model_id, fields):
            in_update.set()
            other_done.wait(timeout=0.5)
            raise StorageError("disk full")

        def update():
            results["update"] = crud.update_model(
                ADMIN, model_id, {"name": "Renamed", "fields": [CONTACT["fields"][0]]}
            )

        def create_elsewhere():
            in_update.wait(timeout=5)
            results["create"] = crud.create_record(EDITOR, other_id, {"body": "hi"})
            other_done.set()

        with patch.object(store, "_insert_fields", side_effect=slow_failure):
            threads = [threading.Thread(target=update), threading.Thread(target=create_elsewhere)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=10)

        assert results["update"].status is ResultStatus.FAILED
        assert results["create"].ok
        model = crud.get_model(ADMIN, model_id).data
        assert model["name"] == "Contact"
        assert [f["name"] for f in model["fields"]] == ["name", "email", "age", "active"]
        assert store.count_records(other_id) == 1
        store.close()

    def test_delete_requires_admin(self, crud):
        model_id = create_contact_model(crud)
        assert crud.delete_model(EDITOR, model_id).status is ResultStatus.DENIED
        assert crud.get_model(VIEWER, model_id).ok

    def test_delete_then_delete_again(self, crud):
        model_id = create_contact_model(crud)
        assert crud.delete_model(ADMIN, model_id).data == {"id": model_id, "deleted": True}
        assert crud.delete_model(ADMIN, model_id).status is ResultStatus.NOT_FOUND
        assert crud.list_models(ADMIN).data == []

    def test_storage_failure_is_generic(self, crud, store, caplog):
        with patch.object(store, "list_models", side_effect=StorageError("password=hunter2")):
            result = crud.list_models(VIEWER)
        assert result.status is ResultStatus.FAILED
        assert result.message == GENERIC_FAILURE_MESSAGE
        assert "hunter2" not in str(result.to_dict())
        assert "List models failed" in caplog.text


# ── Records ──────────────────────────────────────────────────────────────────


class TestRecords:
    def test_validate_without_writing(self, crud, store):
        model_id = create_contact_model(crud)
        result = crud.validate_record(VIEWER, model_id, {"name": "Ada", "email": "ada@example.com", "age": "36"})
        assert result.ok
        assert result.data == {"name": "Ada", "email": "ada@example.com", "age": 36, "active": True}
        assert store.count_records(model_id) == 0

    def test_validate_reports_violations(self, crud):
        model_id = create_contact_model(crud)
        result = crud.validate_record(VIEWER, model_id, {"email": "x", "nickname": "y"})
        assert result.status is ResultStatus.INVALID
        assert [(v.code, v.field) for v in result.violations] == [
            (ViolationCode.MISSING_REQUIRED_FIELD, "name"),
            (ViolationCode.TYPE_MISMATCH, "email"),
            (ViolationCode.UNKNOWN_FIELD, "nickname"),
        ]

    def test_create_stores_coerced_record(self, crud):
        model_id = create_contact_model(crud)
        result = crud.create_record(EDITOR, model_id, {"name": " Ada ", "email": "ada@EXAMPLE.com"})
        assert result.ok
        assert result.data["data"] == {"name": "Ada", "email": "ada@example.com", "age": None, "active": True}
        assert result.data["createdBy"] == "editor-1"

    def test_create_invalid_writes_nothing(self, crud, store):
        model_id = create_contact_model(crud)
        result = crud.create_record(EDITOR, model_id, {"name": "Ada"})
        assert result.status is ResultStatus.INVALID
        assert result.to_dict()["violations"][0]["code"] == "MISSING_REQUIRED_FIELD"
        assert store.count_records(model_id) == 0

    def test_create_for_missing_model(self, crud):
        result = crud.create_record(EDITOR, "missing", {"name": "Ada"})
        assert result.status is ResultStatus.NOT_FOUND

    def test_non_object_payload(self, crud):
        model_id = create_contact_model(crud)
        assert crud.create_record(EDITOR, model_id, ["Ada"]).status is ResultStatus.INVALID

    def test_viewer_reads_but_cannot_write(self, crud):
        model_id = create_contact_model(crud)
        record = crud.create_record(EDITOR, model_id, {"name": "Ada", "email": "a@b.co"}).data
        assert crud.list_records(VIEWER, model_id).data == [record]
        assert crud.get_record(VIEWER, model_id, record["id"]).data == record
        assert crud.create_record(VIEWER, model_id, {"name": "B", "email": "b@b.co"}).status is ResultStatus.DENIED
        assert crud.update_record(VIEWER, model_id, record["id"], {}).status is ResultStatus.DENIED

    def test_update_record(self, crud):
        model_id = create_contact_model(crud)
        record = crud.create_record(EDITOR, model_id, {"name": "Ada", "email": "a@b.co"}).data
        result = crud.update_record(EDITOR, model_id, record["id"], {"name": "Ada L", "email": "a@b.co", "active": "no"})
        assert result.ok
        assert result.data["data"]["active"] is False

    def test_update_record_validates(self, crud):
        model_id = create_contact_model(crud)
        record = crud.create_record(EDITOR, model_id, {"name": "Ada", "email": "a@b.co"}).data
        result = crud.update_record(EDITOR, model_id, record["id"], {"name": "Ada", "email": "a@b.co", "age": "old"})
        assert result.status is ResultStatus.INVALID
        assert crud.get_record(VIEWER, model_id, record["id"]).data["data"]["age"] is None

    def test_update_missing_record(self, crud):
        model_id = create_contact_model(crud)
        result = crud.update_record(EDITOR, model_id, "missing", {"name": "A", "email": "a@b.co"})
        assert result.status is ResultStatus.NOT_FOUND

    def test_editor_cannot_delete_records(self, crud):
        model_id = create_contact_model(crud)
        record = crud.create_record(EDITOR, model_id, {"name": "Ada", "email": "a@b.co"}).data
        assert crud.delete_record(EDITOR, model_id, record["id"]).status is ResultStatus.DENIED
        assert crud.delete_record(ADMIN, model_id, record["id"]).ok
        assert crud.delete_record(ADMIN, model_id, record["id"]).status is ResultStatus.NOT_FOUND

    def test_model_delete_removes_records(self, crud, store):
        model_id = create_contact_model(crud)
        crud.create_record(EDITOR, model_id, {"name": "Ada", "email": "a@b.co"})
        crud.delete_model(ADMIN, model_id)
        assert crud.list_records(ADMIN, model_id).status is ResultStatus.NOT_FOUND
        assert store.count_records(model_id) == 0


# ── Access and role assignments ──────────────────────────────────────────────


class TestRoleAssignments:
    def test_assign_and_resolve(self, crud):
        result = crud.assign_role(ADMIN, "u2", "editor")
        assert result.data == {"identityId": "u2", "role": "editor"}

        ctx = RequestContext.for_identity("u2")
        assert crud.describe_access(ctx).role is Role.EDITOR
        assert crud.create_model(ctx, {"name": "Mine"}).ok
        assert crud.delete_model(ctx, "anything").status is ResultStatus.DENIED

    def test_editor_cannot_manage_roles(self, crud):
        assert crud.assign_role(EDITOR, "u2", Role.ADMIN).status is ResultStatus.DENIED
        assert crud.list_role_assignments(EDITOR).status is ResultStatus.DENIED

    def test_unknown_role(self, crud):
        result = crud.assign_role(ADMIN, "u2", "owner")
        assert result.status is ResultStatus.INVALID
        assert "owner" in result.message

    def test_empty_identity(self, crud):
        assert crud.assign_role(ADMIN, "  ", "viewer").status is ResultStatus.INVALID

    def test_list_assignments(self, crud):
        crud.assign_role(ADMIN, "zed", Role.VIEWER)
        crud.assign_role(ADMIN, "amy", Role.ADMIN)
        assert crud.list_role_assignments(ADMIN).data == [
            {"identityId": "amy", "role": "admin"},
            {"identityId": "zed", "role": "viewer"},
        ]

    def test_resolve_access(self, crud):
        assert not crud.resolve_access(VIEWER, Operation.EDIT_MODEL).allowed
        assert crud.resolve_access(EDITOR, Operation.EDIT_MODEL).allowed

    def test_fail_closed_denies_on_lookup_failure(self, store):
        crud = CrudOrchestrator.from_store(store, fail_closed=True)
        with patch.object(store, "get_role", side_effect=StorageError("down")):
            result = crud.list_models(RequestContext.for_identity("u1"))
        assert result.status is ResultStatus.DENIED
        assert result.decision.role is None

    def test_fail_open_reads_as_viewer(self, store):
        crud = CrudOrchestrator.from_store(store)
        with patch.object(store, "get_role", side_effect=StorageError("down")):
            assert crud.list_models(RequestContext.for_identity("u1")).ok
            assert crud.create_model(RequestContext.for_identity("u1"), {"name": "X"}).status is ResultStatus.DENIED
