"""
Database engine initialisation and the single execution path for read/write steps.
"""

import sys
from typing import Any, Dict, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from src.config import get_env
from src.errors import QueryFailure
from src.schema import metadata


def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def create_schema(engine) -> None:
    """Create every records table that does not exist yet."""
    metadata.create_all(engine)


def fetch_all(engine, step: str, stmt) -> List[Dict[str, Any]]:
    """Run one named read step; any driver error aborts the whole fetch chain."""
    try:
        with engine.connect() as conn:
            return [dict(row) for row in conn.execute(stmt).mappings().all()]
    except SQLAlchemyError as e:
        print(f"[ERROR] query step '{step}' failed: {e}", file=sys.stderr)
        raise QueryFailure(step, e) from e


def fetch_scalar(engine, step: str, stmt) -> Any:
    try:
        with engine.connect() as conn:
            return conn.execute(stmt).scalar()
    except SQLAlchemyError as e:
        print(f"[ERROR] query step '{step}' failed: {e}", file=sys.stderr)
        raise QueryFailure(step, e) from e


def execute_write(engine, step: str, stmt) -> int:
    """Run a single-row update in its own transaction and return the affected row count."""
    try:
        with engine.begin() as conn:
            return conn.execute(stmt).rowcount
    except SQLAlchemyError as e:
        print(f"[ERROR] write step '{step}' failed: {e}", file=sys.stderr)
        raise QueryFailure(step, e) from e


def check_connection(engine) -> bool:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError:
        return False
