"""Activity log. SQLite by default; set DATABASE_URL (or MYSQL_*) for MySQL.
Only per-batch counts and byte totals are stored, never file contents or names.
Startup ensures the table exists; on connection failure logs verbosely and falls back to in-memory SQLite so the app can start."""
import logging
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from app import config as app_config

logger = logging.getLogger("converter.db")

_engine: Optional[Engine] = None

REQUIRED_TABLES = ("batch_activities",)
ACTIVITY_KINDS = ("convert", "compress_images", "compress_documents")


def _is_sqlite() -> bool:
    return "sqlite" in app_config.DATABASE_URL


def _is_mysql() -> bool:
    return "mysql" in app_config.DATABASE_URL


def _db_kind() -> str:
    if _is_mysql():
        return "MySQL"
    if _is_sqlite():
        return "SQLite"
    return "other"


def _make_engine(url: str) -> Engine:
    kwargs = {}
    if "sqlite" in url:
        kwargs["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url:
            # One shared connection, otherwise every connection sees an empty database
            kwargs["poolclass"] = StaticPool
    return create_engine(url, **kwargs)


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        _engine = _make_engine(app_config.DATABASE_URL)
        logger.info("Database engine created (%s)", _db_kind())
    return _engine


def _create_sqlite_tables(conn) -> None:
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS batch_activities (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            kind TEXT NOT NULL,
            file_count INTEGER NOT NULL,
            failed_count INTEGER NOT NULL DEFAULT 0,
            rejected INTEGER NOT NULL DEFAULT 0,
            input_bytes INTEGER NOT NULL DEFAULT 0,
            output_bytes INTEGER NOT NULL DEFAULT 0,
            created_at TEXT NOT NULL
        )
    """))
    conn.commit()


def _create_mysql_tables(conn) -> None:
    conn.execute(text("""
        CREATE TABLE IF NOT EXISTS batch_activities (
            id BIGINT AUTO_INCREMENT PRIMARY KEY,
            kind VARCHAR(50) NOT NULL,
            file_count INT NOT NULL,
            failed_count INT NOT NULL DEFAULT 0,
            rejected TINYINT NOT NULL DEFAULT 0,
            input_bytes BIGINT NOT NULL DEFAULT 0,
            output_bytes BIGINT NOT NULL DEFAULT 0,
            created_at VARCHAR(50) NOT NULL
        )
    """))
    conn.commit()


def _ensure_tables(engine: Engine) -> None:
    """Create required tables if they do not exist."""
    with engine.connect() as conn:
        if _is_mysql():
            _create_mysql_tables(conn)
        else:
            _create_sqlite_tables(conn)
    logger.info("Required tables ensured: %s", ", ".join(REQUIRED_TABLES))


def init_db() -> None:
    """Prepare database at startup. On failure, fall back to in-memory SQLite so the app can start."""
    global _engine
    kind = _db_kind()
    logger.info("Database init: preparing %s (tables: %s)", kind, ", ".join(REQUIRED_TABLES))
    try:
        engine = get_engine()
        _ensure_tables(engine)
        logger.info("Database ready: %s", kind)
        return
    except OperationalError as e:
        logger.warning("Database connection failed (%s): %s. Using in-memory SQLite.", kind, e.orig, exc_info=True)
    except Exception as e:
        logger.exception("Database init failed: %s. Using in-memory SQLite.", e)

    in_memory_url = "sqlite:///:memory:"
    app_config.DATABASE_URL = in_memory_url
    _engine = _make_engine(in_memory_url)
    _ensure_tables(_engine)
    logger.warning("Database unavailable. Activity stats will not persist across restarts.")


def reset_engine() -> None:
    """Dispose the current engine; the next call to get_engine() reconnects."""
    global _engine
    if _engine is not None:
        _engine.dispose()
    _engine = None


@contextmanager
def session():
    with get_engine().connect() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def record_batch_activity(
    kind: str,
    *,
    file_count: int,
    failed_count: int = 0,
    rejected: bool = False,
    input_bytes: int = 0,
    output_bytes: int = 0,
) -> None:
    params = {
        "kind": kind,
        "file_count": file_count,
        "failed_count": failed_count,
        "rejected": 1 if rejected else 0,
        "input_bytes": input_bytes,
        "output_bytes": output_bytes,
        "created_at": _now_iso(),
    }
    with session() as conn:
        conn.execute(
            text("""
                INSERT INTO batch_activities (kind, file_count, failed_count, rejected, input_bytes, output_bytes, created_at)
                VALUES (:kind, :file_count, :failed_count, :rejected, :input_bytes, :output_bytes, :created_at)
            """),
            params,
        )


def get_activity_stats() -> dict:
    """Per-kind totals: batches, files, failed_files, rejected_batches, input/output bytes and compression_percent."""
    with get_engine().connect() as conn:
        rows = conn.execute(
            text("""
                SELECT
                    kind,
                    COUNT(*) AS batches,
                    COALESCE(SUM(file_count), 0) AS files,
                    COALESCE(SUM(failed_count), 0) AS failed_files,
                    COALESCE(SUM(rejected), 0) AS rejected_batches,
                    COALESCE(SUM(input_bytes), 0) AS input_bytes,
                    COALESCE(SUM(output_bytes), 0) AS output_bytes
                FROM batch_activities GROUP BY kind
            """),
        ).fetchall()
    stats = {
        kind: {
            "batches": 0,
            "files": 0,
            "failed_files": 0,
            "rejected_batches": 0,
            "input_bytes": 0,
            "output_bytes": 0,
            "compression_percent": 0.0,
        }
        for kind in ACTIVITY_KINDS
    }
    for r in rows:
        total_input = int(r[5])
        total_output = int(r[6])
        compression_percent = 0.0
        if total_input > 0:
            compression_percent = round((1.0 - total_output / total_input) * 100.0, 1)
        stats[r[0]] = {
            "batches": int(r[1]),
            "files": int(r[2]),
            "failed_files": int(r[3]),
            "rejected_batches": int(r[4]),
            "input_bytes": total_input,
            "output_bytes": total_output,
            "compression_percent": compression_percent,
        }
    return stats
