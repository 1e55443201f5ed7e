"""Tests for vnext_sync.index — installed-instance index."""

from __future__ import annotations

import pytest

from tests._support import count_instances, insert_instance
from vnext_sync.core.dialect import PostgreSQLDialect
from vnext_sync.core.errors import DatabaseConnectionError, QueryError, UnsafeIdentifierError
from vnext_sync.index import InstanceIndex, UnavailableIndex, schema_for_flow


class RecordingConnection:
    """Connection that records SQL and returns canned rows."""

    def __init__(self, row=None, fail: Exception | None = None) -> None:
        self.row = row
        self.fail = fail
        self.statements: list[tuple[str, tuple]] = []
        self.commits = 0
        self.rollbacks = 0

    def execute(self, sql, params=()):
        self.statements.append((sql, params))
        if self.fail:
            raise self.fail

    def fetchone(self):
        return self.row

    def commit(self):
        self.commits += 1

    def rollback(self):
        self.rollbacks += 1


class TestSchemaForFlow:
    def test_hyphens_become_underscores(self):
        assert schema_for_flow("sys-tasks") == "sys_tasks"

    @pytest.mark.parametrize("flow", ['sys"; DROP TABLE x; --', "1flow", "sys tasks", ""])
    def test_unsafe_names_rejected(self, flow):
        with pytest.raises(UnsafeIdentifierError):
            schema_for_flow(flow)


class TestInstanceIndex:
    def test_find_latest_returns_newest(self, sqlite_conn, index):
        insert_instance(sqlite_conn, "sys-tasks", "k1", "old", created_at="2024-01-01")
        insert_instance(sqlite_conn, "sys-tasks", "k1", "new", created_at="2024-06-01")
        insert_instance(sqlite_conn, "sys-tasks", "k2", "other", created_at="2025-01-01")

        entry = index.find_latest("sys-tasks", "k1")
        assert entry.instance_id == "new"
        assert entry.key == "k1"

    def test_find_latest_not_found(self, index):
        assert index.find_latest("sys-flows", "missing") is None

    def test_lookup_is_per_flow(self, sqlite_conn, index):
        insert_instance(sqlite_conn, "sys-tasks", "k1", "t1")
        assert index.find_latest("sys-views", "k1") is None

    def test_delete(self, sqlite_conn, index):
        instance_id = insert_instance(sqlite_conn, "sys-schemas", "s1")
        index.delete("sys-schemas", instance_id)
        assert count_instances(sqlite_conn, "sys-schemas", "s1") == 0

    def test_unknown_schema_raises_query_error(self, index):
        with pytest.raises(QueryError) as excinfo:
            index.find_latest("sys-unknown", "k1")
        assert excinfo.value.context.flow == "sys-unknown"

    def test_postgres_placeholders(self):
        conn = RecordingConnection(row={"Id": "i1", "Key": "k1", "CreatedAt": "t"})
        entry = InstanceIndex(conn, PostgreSQLDialect()).find_latest("sys-flows", "k1")
        sql, params = conn.statements[0]
        assert sql == (
            'SELECT "Id", "Key", "CreatedAt" FROM "sys_flows"."Instances" '
            'WHERE "Key" = %s ORDER BY "CreatedAt" DESC LIMIT 1'
        )
        assert params == ("k1",)
        assert entry.instance_id == "i1"

    def test_delete_commits(self):
        conn = RecordingConnection()
        InstanceIndex(conn).delete("sys-flows", "i1")
        assert conn.statements == [('DELETE FROM "sys_flows"."Instances" WHERE "Id" = ?', ("i1",))]
        assert conn.commits == 1

    def test_failed_delete_rolls_back(self):
        conn = RecordingConnection(fail=RuntimeError("locked"))
        with pytest.raises(QueryError, match="locked"):
            InstanceIndex(conn).delete("sys-flows", "i1")
        assert conn.rollbacks == 1

    def test_tuple_rows(self):
        conn = RecordingConnection(row=("i9", "k9", "t"))
        assert InstanceIndex(conn).find_latest("sys-flows", "k9").instance_id == "i9"

    def test_ping(self, index):
        assert index.ping()


class TestUnavailableIndex:
    def test_every_call_raises_connection_error(self):
        index = UnavailableIndex(DatabaseConnectionError("down"))
        with pytest.raises(DatabaseConnectionError):
            index.find_latest("sys-flows", "k")
        with pytest.raises(DatabaseConnectionError):
            index.delete("sys-flows", "i")
        with pytest.raises(DatabaseConnectionError):
            index.ping()
