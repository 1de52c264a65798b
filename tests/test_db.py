"""Tests for the serialized SQLite store."""

import threading

import pytest

from activity_timer.db import StoreError, open_store, store_connection


class TestOpen:
    def test_creates_both_tables(self, store):
        names = {
            row["name"]
            for row in store.query("SELECT name FROM sqlite_master WHERE type = 'table'")
        }
        assert {"activity", "job"} <= names

    def test_reopening_file_keeps_rows(self, tmp_path):
        path = tmp_path / "timer.db"
        with store_connection(path) as store:
            store.insert("INSERT INTO job (description) VALUES (?)", ("Review",))
        with store_connection(path) as store:
            rows = store.query("SELECT description FROM job")
        assert [row["description"] for row in rows] == ["Review"]

    def test_open_failure_raises_store_error(self, tmp_path):
        with pytest.raises(StoreError, match="Failed to open database"):
            open_store(tmp_path / "missing" / "timer.db")


class TestExecute:
    def test_insert_returns_new_id(self, store):
        first = store.insert("INSERT INTO job (description) VALUES (?)", ("a",))
        second = store.insert("INSERT INTO job (description) VALUES (?)", ("b",))
        assert second == first + 1

    def test_execute_returns_rowcount(self, store):
        store.insert("INSERT INTO job (description) VALUES (?)", ("a",))
        store.insert("INSERT INTO job (description) VALUES (?)", ("b",))
        assert store.execute("UPDATE job SET description = ?", ("c",)) == 2

    def test_bad_statement_carries_engine_message(self, store):
        with pytest.raises(StoreError, match="no such table"):
            store.query("SELECT * FROM nowhere")

    def test_constraint_failure_is_store_error(self, store):
        with pytest.raises(StoreError, match="NOT NULL"):
            store.insert("INSERT INTO job (description) VALUES (?)", (None,))

    def test_store_usable_after_error(self, store):
        with pytest.raises(StoreError):
            store.execute("UPDATE nowhere SET x = 1")
        store.insert("INSERT INTO job (description) VALUES (?)", ("still works",))
        assert store.query_one("SELECT COUNT(*) AS n FROM job")["n"] == 1

    def test_query_one_without_rows(self, store):
        assert store.query_one("SELECT id FROM job WHERE id = ?", (42,)) is None


class TestSerializedAccess:
    def test_concurrent_writers_all_land(self, tmp_path):
        with store_connection(tmp_path / "timer.db") as store:

            def write(prefix):
                for index in range(25):
                    store.insert(
                        "INSERT INTO job (description) VALUES (?)", (f"{prefix}-{index}",)
                    )

            threads = [threading.Thread(target=write, args=(n,)) for n in range(4)]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

            assert store.query_one("SELECT COUNT(*) AS n FROM job")["n"] == 100
