"""Alembic migration tests.

File named test_zzz_alembic.py to sort LAST in pytest collection order.
"""

from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory

from squadcheck.db.base import Base
from squadcheck.db import models  # noqa: F401

ROOT = Path(__file__).resolve().parents[1]


def _scripts() -> ScriptDirectory:
    config = Config(str(ROOT / "alembic.ini"))
    config.set_main_option("script_location", str(ROOT / "alembic"))
    return ScriptDirectory.from_config(config)


def test_single_head() -> None:
    """The migration history has one head: the core tables revision."""
    assert _scripts().get_heads() == ["001_core_tables"]


def test_migration_covers_every_table() -> None:
    """Every ORM table is created by the migrations."""
    source = (ROOT / "alembic" / "versions" / "001_core_tables.py").read_text()
    for table in Base.metadata.tables:
        assert f'"{table}"' in source, table
