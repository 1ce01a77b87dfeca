import sys
import pytest
from pathlib import Path

# Ensure project root on sys.path
_THIS_DIR = Path(__file__).resolve().parent
_PROJECT_ROOT = _THIS_DIR.parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from piscan.db import ConnCoordinates, initialize_db  # noqa: E402


@pytest.fixture()
def coords(tmp_path, monkeypatch):
    db_dir = tmp_path / "db"
    # Point piscan to this temp dir and keep any local config.yaml out of the way
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("PISCAN_CONFIG", raising=False)
    monkeypatch.delenv("PISCAN_TABLES_PATH", raising=False)
    monkeypatch.setenv("PISCAN_DB_PATH", str(db_dir))
    return ConnCoordinates(db_path=str(db_dir))


@pytest.fixture()
def conn(coords):
    c = initialize_db(coords)
    try:
        yield c
    finally:
        c.close()


@pytest.fixture()
def tables_dir(tmp_path):
    d = tmp_path / "tables"
    d.mkdir()
    return d
