# manages connections to the sqlite file, creates tables and seed data on first use
import asyncio
import os
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from sqlite3 import Row
from typing import AsyncIterator, Set

import aiosqlite
import bcrypt

from solarpos.config import settings
from solarpos.utils.logger import get_logger

_logger = get_logger(__name__)

SQL_DIR = Path(__file__).resolve().parent
DB_INIT_SCRIPTS = [SQL_DIR / "schema.sql", SQL_DIR / "seed.sql"]

_initialized: Set[str] = set()
_init_lock = asyncio.Lock()


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()


def check_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode(), password_hash.encode())


async def _init_db(conn: aiosqlite.Connection) -> None:
    for script in DB_INIT_SCRIPTS:
        if not script.exists() or script.stat().st_size == 0:
            continue
        _logger.info(f"Initializing database with script {script.name}...")
        await conn.executescript(script.read_text(encoding="utf-8"))

    _logger.info(f"Creating default admin account {settings.admin_email}")
    await conn.execute(
        "INSERT INTO users(id, name, email, password_hash, role, created_at) "
        "VALUES (?, ?, ?, ?, 'admin', ?);",
        (
            uuid.uuid4().hex,
            "Administrator",
            settings.admin_email,
            hash_password(settings.admin_password),
            datetime.now().isoformat(timespec="seconds"),
        ),
    )
    await conn.commit()


async def _table_exists(conn: aiosqlite.Connection, table_name: str) -> bool:
    cur = await conn.execute(
        """
        SELECT name
        FROM sqlite_master
        WHERE type = 'table'
          AND name = ?;
        """,
        (table_name,),
    )
    row = await cur.fetchone()
    await cur.close()
    return row is not None


@asynccontextmanager
async def connect(db_path: str) -> AsyncIterator[aiosqlite.Connection]:
    """Async context manager yielding an aiosqlite connection with FK enabled.

    Creates tables, seed data and the default admin the first time a given
    database file is opened.
    """
    parent = os.path.dirname(db_path)
    if parent:
        os.makedirs(parent, exist_ok=True)
    conn = await aiosqlite.connect(db_path)
    conn.row_factory = Row
    await conn.execute("PRAGMA foreign_keys = ON;")

    if db_path not in _initialized:
        async with _init_lock:
            if db_path not in _initialized:
                if not await _table_exists(conn, "users"):
                    _logger.info(f"Initializing database {db_path}...")
                    await _init_db(conn)
                _initialized.add(db_path)
    try:
        yield conn
    finally:
        await conn.close()
