"""Copy sessions from a JSON-file session store into the database store.

Useful when a deployment that started on SESSION_STORE_BACKEND=file moves
to PostgreSQL. Sessions already present in the database are skipped.

Usage (from backend/): python ../scripts/import-file-sessions.py [SESSIONS_DIR]
"""

import asyncio
import sys

from app.config import settings
from app.db.postgres import async_session_factory, dispose_engine
from app.services.exceptions import StorageWriteFailed
from app.services.session_store import FileSessionStore, PostgresSessionStore


async def import_sessions(sessions_dir: str) -> dict[str, int]:
    source = FileSessionStore(sessions_dir)
    target = PostgresSessionStore(async_session_factory)

    imported = 0
    skipped = 0
    failed = 0
    for record in reversed(await source.list_all()):
        if await target.get_by_id(record.id) is not None:
            skipped += 1
            continue
        try:
            await target.insert(record)
            imported += 1
        except StorageWriteFailed as e:
            print(f"Failed to import {record.id}: {e}")
            failed += 1

    return {"imported": imported, "skipped": skipped, "failed": failed}


async def main() -> None:
    sessions_dir = sys.argv[1] if len(sys.argv) > 1 else settings.sessions_dir
    try:
        result = await import_sessions(sessions_dir)
    finally:
        await dispose_engine()
    print(
        f"Imported {result['imported']} sessions from {sessions_dir} "
        f"({result['skipped']} already present, {result['failed']} failed)"
    )


if __name__ == "__main__":
    asyncio.run(main())
