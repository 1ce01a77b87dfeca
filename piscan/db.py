from __future__ import annotations

# piscan/db.py
import sqlite3
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Iterator
import os
import yaml

# Default database filename
SQLITE_FILE = "PiScanDB.sqlite"

# Default sql definitions file
TABLE_SQL_DEFINITIONS = "tables.sql"

STATEMENT_DELIMITER = ";"

_PACKAGE_DIR = os.path.dirname(os.path.abspath(__file__))
_SCHEMA_DIR = os.path.join(_PACKAGE_DIR, "schema")
_HOME_DB_DIR = os.path.join(os.path.expanduser("~"), ".piscan")


class SchemaError(Exception):
    """Applying the table definitions failed.

    ``conn`` is the connection that was already open when the failure
    happened; it may be usable but its schema is not guaranteed complete.
    ``statement`` is the statement that failed, or None when the definitions
    file itself could not be read.
    """

    def __init__(self, message: str, conn: sqlite3.Connection, statement: str | None = None):
        super().__init__(message)
        self.conn = conn
        self.statement = statement


@dataclass
class ConnCoordinates:
    db_path: str
    db_file: str = SQLITE_FILE
    tables_path: str = field(default=_SCHEMA_DIR)

    @property
    def db_location(self) -> str:
        return os.path.join(self.db_path, self.db_file)

    @property
    def tables_location(self) -> str:
        return os.path.join(self.tables_path, TABLE_SQL_DEFINITIONS)


# 路径解析顺序 / resolution order:
# 1) env PISCAN_DB_PATH / PISCAN_TABLES_PATH
# 2) config.yaml (or the file named by PISCAN_CONFIG): db_path, db_file, tables_path
# 3) fallback: ~/.piscan and the packaged schema directory
def _read_config_yaml() -> dict:
    cfg_path = os.environ.get("PISCAN_CONFIG") or os.path.join(os.getcwd(), "config.yaml")
    if not os.path.exists(cfg_path):
        return {}
    with open(cfg_path, "r", encoding="utf-8") as f:
        cfg = yaml.safe_load(f) or {}
    if not isinstance(cfg, dict):
        raise ValueError("invalid_config")
    out = {}
    for k in ("db_path", "db_file", "tables_path"):
        v = cfg.get(k)
        if isinstance(v, str) and v.strip():
            out[k] = os.path.expanduser(v.strip())
    return out


def get_coordinates() -> ConnCoordinates:
    cfg = _read_config_yaml()
    db_path = os.environ.get("PISCAN_DB_PATH") or cfg.get("db_path") or _HOME_DB_DIR
    tables_path = os.environ.get("PISCAN_TABLES_PATH") or cfg.get("tables_path") or _SCHEMA_DIR
    return ConnCoordinates(
        db_path=db_path,
        db_file=cfg.get("db_file", SQLITE_FILE),
        tables_path=tables_path,
    )


def split_statements(content: str) -> list[str]:
    return [s for s in content.split(STATEMENT_DELIMITER) if s.strip()]


def open_db(path: str) -> sqlite3.Connection:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    conn = sqlite3.connect(
        path,
        check_same_thread=False,
        isolation_level=None,
    )
    try:
        conn.execute("PRAGMA foreign_keys = ON;")
    except sqlite3.Error:
        conn.close()
        raise
    conn.row_factory = sqlite3.Row
    return conn


def initialize_db(coords: ConnCoordinates) -> sqlite3.Connection:
    """
    Open (or create) the database file and apply the table definitions.

    Statements run one by one in file order. The first failing statement
    stops initialization; statements already applied are not rolled back.
    """
    conn = open_db(coords.db_location)

    try:
        with open(coords.tables_location, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise SchemaError(f"cannot read table definitions {coords.tables_location}: {e}", conn) from e

    for statement in split_statements(content):
        try:
            conn.execute(statement)
        except sqlite3.Error as e:
            raise SchemaError(f"table definition failed: {e}", conn, statement.strip()) from e

    return conn


@contextmanager
def get_conn(coords: ConnCoordinates | None = None) -> Iterator[sqlite3.Connection]:
    """
    获取已初始化的 SQLite 连接。优先使用显式传入的 coords，否则走 get_coordinates()。
    The connection is closed on exit, including when initialization fails.
    """
    coords = coords or get_coordinates()
    try:
        conn = initialize_db(coords)
    except SchemaError as e:
        e.conn.close()
        raise
    try:
        yield conn
    finally:
        conn.close()
