"""
Schema version gate.

The schema is fixed: every model column must exist in the live database and
the single ``schema_version`` row must match ``SCHEMA_VERSION``. A mismatch
stops the app at startup instead of letting individual queries fail later.

Usage:
    from vpm.models.schema import verify_schema, stamp_schema_version

    stamp_schema_version()   # after db.create_all() on a fresh database
    verify_schema()          # raises SchemaMismatchError
"""

import logging
from datetime import datetime, timezone

import sqlalchemy as sa

from vpm.core.exceptions import SchemaMismatchError
from vpm.models import db

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1


class SchemaVersion(db.Model):
    __tablename__ = "schema_version"

    id = db.Column(db.Integer, primary_key=True)
    version = db.Column(db.Integer, nullable=False)
    applied_at = db.Column(
        db.DateTime(timezone=True), nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )


def current_schema_version() -> int | None:
    row = db.session.execute(
        sa.select(SchemaVersion.version).order_by(SchemaVersion.id.desc()).limit(1)
    ).scalar()
    return row


def stamp_schema_version(version: int = SCHEMA_VERSION) -> None:
    """Record *version* unless it is already the current one. Commits."""
    if current_schema_version() == version:
        return
    db.session.add(SchemaVersion(version=version))
    db.session.commit()
    logger.info("Schema stamped at version %s", version)


def find_missing_columns() -> dict[str, list[str]]:
    """Compare model metadata against the live database.

    Returns ``{table: [column, ...]}``; a missing table is reported as
    ``{table: ["*"]}``.
    """
    insp = sa.inspect(db.engine)
    live_tables = set(insp.get_table_names())
    missing: dict[str, list[str]] = {}

    for table in db.metadata.sorted_tables:
        if table.name not in live_tables:
            missing[table.name] = ["*"]
            continue
        live_cols = {c["name"] for c in insp.get_columns(table.name)}
        absent = [c.name for c in table.columns if c.name not in live_cols]
        if absent:
            missing[table.name] = absent
    return missing


def verify_schema(expected_version: int = SCHEMA_VERSION) -> None:
    """Raise SchemaMismatchError unless the live schema matches the models."""
    missing = find_missing_columns()
    found = None
    if "schema_version" not in missing:
        found = current_schema_version()

    if missing or found != expected_version:
        raise SchemaMismatchError(
            missing=missing,
            found_version=found,
            expected_version=expected_version,
        )
    logger.info("Schema verified at version %s", found)
