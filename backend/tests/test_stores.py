"""Tests for the schema, record and role stores.

Every test runs against both the SQLite store and the in-memory store.
"""

import pytest

from modelforge.auth.types import Role
from modelforge.errors import NotFound
from modelforge.persistence.memory import InMemoryStore
from modelforge.persistence.sqlite import SQLiteStore
from modelforge.schema.definitions import FieldDefinition, ModelDefinition


@pytest.fixture(params=["sqlite", "memory"])
def store(request, tmp_path):
    if request.param == "sqlite":
        s = SQLiteStore(tmp_path / "test.db")
    else:
        s = InMemoryStore()
    s.connect()
    yield s
    s.close()


def task_model(name="Task") -> ModelDefinition:
    return ModelDefinition(
        name=name,
        description="Things to do",
        created_by="user-1",
        fields=[
            FieldDefinition(name="title", type="string", required=True, order_index=0),
            FieldDefinition(name="done", type="boolean", default_value=False, order_index=1),
            FieldDefinition(name="due", type="date", order_index=2),
        ],
    )


class TestModels:
    def test_create_and_get_round_trip(self, store):
        model_id = store.create_model(task_model())
        model = store.get_model(model_id)

        assert model.id == model_id
        assert model.name == "Task"
        assert model.description == "Things to do"
        assert model.created_by == "user-1"
        assert model.created_at is not None
        assert model.field_names == ["title", "done", "due"]
        assert model.get_field("title").required
        assert model.get_field("done").default_value is False
        assert model.get_field("due").default_value is None

    def test_ids_are_unique(self, store):
        assert store.create_model(task_model()) != store.create_model(task_model())

    def test_get_missing_model(self, store):
        with pytest.raises(NotFound):
            store.get_model("nope")

    def test_list_newest_first(self, store):
        first = store.create_model(task_model("First"))
        second = store.create_model(task_model("Second"))
        third = store.create_model(task_model("Third"))

        summaries = store.list_models()
        assert [s.id for s in summaries] == [third, second, first]
        assert all(s.field_count == 3 for s in summaries)

    def test_list_empty(self, store):
        assert store.list_models() == []

    def test_update_replaces_fields(self, store):
        model_id = store.create_model(task_model())
        updated = store.update_model(
            model_id,
            "Chore",
            None,
            [FieldDefinition(name="title", type="string", order_index=0)],
        )
        assert updated.name == "Chore"
        assert updated.description is None
        assert updated.field_names == ["title"]
        assert store.get_model(model_id).field_names == ["title"]

    def test_update_missing_model(self, store):
        with pytest.raises(NotFound):
            store.update_model("nope", "X", None, [])

    def test_delete_cascades(self, store):
        model_id = store.create_model(task_model())
        record = store.create_record(model_id, {"title": "a"})
        store.delete_model(model_id)

        with pytest.raises(NotFound):
            store.get_model(model_id)
        with pytest.raises(NotFound):
            store.get_record(model_id, record["id"])
        assert store.count_records(model_id) == 0

    def test_second_delete_is_not_found(self, store):
        model_id = store.create_model(task_model())
        store.delete_model(model_id)
        with pytest.raises(NotFound):
            store.delete_model(model_id)


class TestRecords:
    def test_create_and_get(self, store):
        model_id = store.create_model(task_model())
        record = store.create_record(model_id, {"title": "Write tests", "done": False}, created_by="u1")

        assert record["modelId"] == model_id
        assert record["data"] == {"title": "Write tests", "done": False}
        assert record["createdBy"] == "u1"
        assert store.get_record(model_id, record["id"]) == record
        assert store.count_records(model_id) == 1

    def test_create_for_missing_model(self, store):
        with pytest.raises(NotFound):
            store.create_record("nope", {"title": "x"})

    def test_list_newest_first(self, store):
        model_id = store.create_model(task_model())
        a = store.create_record(model_id, {"title": "a"})
        b = store.create_record(model_id, {"title": "b"})
        assert [r["id"] for r in store.list_records(model_id)] == [b["id"], a["id"]]

    def test_list_missing_model(self, store):
        with pytest.raises(NotFound):
            store.list_records("nope")

    def test_update(self, store):
        model_id = store.create_model(task_model())
        record = store.create_record(model_id, {"title": "a"})
        updated = store.update_record(model_id, record["id"], {"title": "b", "done": True})
        assert updated["data"] == {"title": "b", "done": True}
        assert updated["createdAt"] == record["createdAt"]

    def test_update_missing_record(self, store):
        model_id = store.create_model(task_model())
        with pytest.raises(NotFound):
            store.update_record(model_id, "nope", {})

    def test_record_scoped_to_model(self, store):
        a = store.create_model(task_model("A"))
        b = store.create_model(task_model("B"))
        record = store.create_record(a, {"title": "x"})
        with pytest.raises(NotFound):
            store.get_record(b, record["id"])

    def test_delete(self, store):
        model_id = store.create_model(task_model())
        record = store.create_record(model_id, {"title": "a"})
        store.delete_record(model_id, record["id"])
        with pytest.raises(NotFound):
            store.delete_record(model_id, record["id"])


class TestRoles:
    def test_unassigned(self, store):
        assert store.get_role("nobody") is None

    def test_set_and_upsert(self, store):
        store.set_role("u1", Role.EDITOR)
        assert store.get_role("u1") is Role.EDITOR
        store.set_role("u1", Role.ADMIN)
        assert store.get_role("u1") is Role.ADMIN

    def test_list_sorted_by_identity(self, store):
        store.set_role("zed", Role.VIEWER)
        store.set_role("amy", Role.ADMIN)
        assert list(store.list_roles().items()) == [("amy", Role.ADMIN), ("zed", Role.VIEWER)]


class TestSQLitePersistence:
    def test_data_survives_reconnect(self, tmp_path):
        path = tmp_path / "persist.db"
        first = SQLiteStore(path)
        first.connect()
        model_id = first.create_model(task_model())
        first.set_role("u1", Role.EDITOR)
        first.close()

        second = SQLiteStore(path)
        second.connect()
        try:
            assert second.get_model(model_id).name == "Task"
            assert second.get_role("u1") is Role.EDITOR
        finally:
            second.close()

    def test_operations_require_connection(self):
        with pytest.raises(RuntimeError):
            SQLiteStore().list_models()
