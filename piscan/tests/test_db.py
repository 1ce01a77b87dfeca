"""
Connection bootstrap tests: schema loading, statement ordering and failures.
"""
import os
import sqlite3

import pytest

from piscan.db import (
    ConnCoordinates,
    SchemaError,
    SQLITE_FILE,
    get_conn,
    get_coordinates,
    initialize_db,
    split_statements,
)

GOOD_TABLES = (
    "create table if not exists account (id integer primary key, email text, api_code text);\n"
    "create table if not exists product (id integer primary key, barcode text)"
)


def _tables(conn):
    rows = conn.execute("SELECT name FROM sqlite_master WHERE type='table' ORDER BY name").fetchall()
    return [r["name"] for r in rows if not r["name"].startswith("sqlite_")]


def _write_tables(directory, content):
    (directory / "tables.sql").write_text(content, encoding="utf-8")


def test_split_statements_keeps_order_and_drops_blanks():
    parts = split_statements("create table a (x);\n create table b (y);\n\n")
    assert [p.strip() for p in parts] == ["create table a (x)", "create table b (y)"]


def test_initialize_creates_file_and_tables(coords):
    conn = initialize_db(coords)
    try:
        assert os.path.exists(os.path.join(coords.db_path, SQLITE_FILE))
        assert _tables(conn) == ["account", "product"]
        assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    finally:
        conn.close()


def test_initialize_twice_is_idempotent(coords):
    conn = initialize_db(coords)
    before = conn.execute("SELECT type, name, sql FROM sqlite_master ORDER BY name").fetchall()
    conn.close()

    conn = initialize_db(coords)
    try:
        after = conn.execute("SELECT type, name, sql FROM sqlite_master ORDER BY name").fetchall()
        assert [tuple(r) for r in before] == [tuple(r) for r in after]
    finally:
        conn.close()


def test_custom_tables_file_runs_each_statement(coords, tables_dir):
    _write_tables(tables_dir, GOOD_TABLES)
    conn = initialize_db(ConnCoordinates(db_path=coords.db_path, tables_path=str(tables_dir)))
    try:
        assert _tables(conn) == ["account", "product"]
    finally:
        conn.close()


def test_malformed_statement_halts_and_keeps_earlier_tables(coords, tables_dir):
    _write_tables(tables_dir, GOOD_TABLES + ";\ncreate tabel broken (x);\ncreate table never (y)")
    with pytest.raises(SchemaError) as exc:
        initialize_db(ConnCoordinates(db_path=coords.db_path, tables_path=str(tables_dir)))

    err = exc.value
    try:
        assert err.statement == "create tabel broken (x)"
        assert isinstance(err.__cause__, sqlite3.Error)
        # first two applied, nothing after the failure
        assert _tables(err.conn) == ["account", "product"]
    finally:
        err.conn.close()


def test_missing_tables_file_returns_open_connection(coords, tables_dir):
    with pytest.raises(SchemaError) as exc:
        initialize_db(ConnCoordinates(db_path=coords.db_path, tables_path=str(tables_dir / "nope")))

    err = exc.value
    try:
        assert err.statement is None
        assert isinstance(err.__cause__, OSError)
        assert err.conn.execute("SELECT 1").fetchone()[0] == 1
    finally:
        err.conn.close()


def test_open_failure_propagates(tmp_path):
    # database directory below a regular file cannot be created
    (tmp_path / "blocker").write_text("x", encoding="utf-8")
    with pytest.raises(OSError):
        initialize_db(ConnCoordinates(db_path=str(tmp_path / "blocker" / "db")))


def test_get_conn_closes_connection(coords):
    with get_conn(coords) as conn:
        conn.execute("SELECT 1")
    with pytest.raises(sqlite3.ProgrammingError):
        conn.execute("SELECT 1")


def test_coordinates_from_env(coords):
    c = get_coordinates()
    assert c.db_path == coords.db_path
    assert c.db_file == SQLITE_FILE
    assert c.tables_location.endswith(os.path.join("schema", "tables.sql"))


def test_coordinates_from_config_yaml(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PISCAN_DB_PATH", raising=False)
    monkeypatch.delenv("PISCAN_TABLES_PATH", raising=False)
    monkeypatch.delenv("PISCAN_CONFIG", raising=False)
    (tmp_path / "config.yaml").write_text(
        f"db_path: {tmp_path / 'data'}\ndb_file: scans.sqlite\n", encoding="utf-8"
    )
    c = get_coordinates()
    assert c.db_location == os.path.join(str(tmp_path / "data"), "scans.sqlite")

    # env still wins over config.yaml
    monkeypatch.setenv("PISCAN_DB_PATH", str(tmp_path / "env"))
    assert get_coordinates().db_path == str(tmp_path / "env")


@pytest.mark.parametrize("content", ["just a string\n", "- db_path\n- tables_path\n"])
def test_config_yaml_must_be_a_mapping(tmp_path, monkeypatch, content):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PISCAN_CONFIG", raising=False)
    (tmp_path / "config.yaml").write_text(content, encoding="utf-8")
    with pytest.raises(ValueError, match="invalid_config"):
        get_coordinates()


def test_open_closes_connection_when_pragma_fails(tmp_path, monkeypatch):
    class FailingConn:
        closed = False

        def execute(self, sql, *args):
            raise sqlite3.OperationalError("disk I/O error")

        def close(self):
            self.closed = True

    fake = FailingConn()
    monkeypatch.setattr(sqlite3, "connect", lambda *a, **kw: fake)
    with pytest.raises(sqlite3.OperationalError):
        initialize_db(ConnCoordinates(db_path=str(tmp_path)))
    assert fake.closed
