import re
from pathlib import Path

from bizledger.db import Base
import bizledger.models  # noqa: F401

VERSIONS_DIR = Path(__file__).resolve().parents[2] / "alembic" / "versions"


def test_alembic_revision_ids_fit_version_table_limit():
    """Postgres alembic_version.version_num is varchar(32)."""
    too_long: list[tuple[str, str, int]] = []

    for migration_file in VERSIONS_DIR.glob("*.py"):
        text = migration_file.read_text(encoding="utf-8")
        match = re.search(r'^revision = "([^"]+)"', text, re.MULTILINE)
        if match and len(match.group(1)) > 32:
            too_long.append((migration_file.name, match.group(1), len(match.group(1))))

    assert not too_long, (
        "Alembic revision IDs must be <= 32 chars to fit alembic_version.version_num. "
        f"Found: {too_long}"
    )


def test_initial_migration_creates_every_model_table():
    text = (VERSIONS_DIR / "0001_initial.py").read_text(encoding="utf-8")
    created = set(re.findall(r'op\.create_table\(\s*"([a-z_]+)"', text))
    assert created == set(Base.metadata.tables)
    assert "ck_payment_single_parent" in text
    for name in ("uq_sales_user_number", "uq_quotations_user_number", "uq_purchases_user_number"):
        assert name in text
