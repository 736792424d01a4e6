"""Whole-document persistence: Protocol definition, JSON and SQLite backends, factory."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import aiosqlite

from steam_pricer.core.config import StorageConfig
from steam_pricer.core.exceptions import StorageError
from steam_pricer.core.models import StorageBackend

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentStore(Protocol):
    """Named JSON documents, always read and written whole."""

    async def load(self, name: str) -> dict[str, Any] | None:
        """Return the stored document, or None if it was never saved."""
        ...

    async def save(self, name: str, document: dict[str, Any]) -> None:
        """Replace the stored document."""
        ...

    async def close(self) -> None: ...


class JsonDocumentStore:
    """One ``<name>.json`` file per document under ``data_dir``.

    Writes go to a temporary sibling file first and are moved into place,
    so a crash mid-write never leaves a truncated document behind.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self._dir = Path(data_dir)

    def path_for(self, name: str) -> Path:
        return self._dir / f"{name}.json"

    async def load(self, name: str) -> dict[str, Any] | None:
        path = self.path_for(name)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise StorageError(
                f"Failed to load {path}: {e}",
                context={"operation": "load", "document": name, "path": str(path)},
            ) from e
        if not isinstance(data, dict):
            raise StorageError(
                f"Document {path} is not a JSON object",
                context={"operation": "load", "document": name, "path": str(path)},
            )
        return data

    async def save(self, name: str, document: dict[str, Any]) -> None:
        path = self.path_for(name)
        tmp = path.with_suffix(".json.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(document, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to save {path}: {e}",
                context={"operation": "save", "document": name, "path": str(path)},
            ) from e

    async def close(self) -> None:
        return None


class SqliteDocumentStore:
    """Documents kept as JSON text in a single SQLite table.

    Parameters
    ----------
    db_path : str
        Path to the SQLite database file.
        Created automatically if it doesn't exist.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._initialized = False

    async def _ensure_table(self) -> None:
        """Create the documents table if it doesn't exist."""
        if self._initialized:
            return

        Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                """CREATE TABLE IF NOT EXISTS documents (
                    name TEXT PRIMARY KEY,
                    body TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )"""
            )
            await db.commit()
        self._initialized = True

    async def load(self, name: str) -> dict[str, Any] | None:
        try:
            await self._ensure_table()
            async with aiosqlite.connect(self._db_path) as db:
                cursor = await db.execute(
                    "SELECT body FROM documents WHERE name = ?", (name,)
                )
                row = await cursor.fetchone()
            if row is None:
                return None
            data = json.loads(row[0])
        except (aiosqlite.Error, OSError, ValueError) as e:
            raise StorageError(
                f"Failed to load document {name!r}: {e}",
                context={"operation": "load", "document": name, "path": self._db_path},
            ) from e
        if not isinstance(data, dict):
            raise StorageError(
                f"Document {name!r} is not a JSON object",
                context={"operation": "load", "document": name, "path": self._db_path},
            )
        return data

    async def save(self, name: str, document: dict[str, Any]) -> None:
        try:
            body = json.dumps(document)
            await self._ensure_table()
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(
                    """INSERT OR REPLACE INTO documents (name, body, updated_at)
                       VALUES (?, ?, ?)""",
                    (name, body, datetime.now(timezone.utc).isoformat()),
                )
                await db.commit()
        except (aiosqlite.Error, OSError, TypeError, ValueError) as e:
            raise StorageError(
                f"Failed to save document {name!r}: {e}",
                context={"operation": "save", "document": name, "path": self._db_path},
            ) from e

    async def close(self) -> None:
        return None


def create_document_store(config: StorageConfig) -> DocumentStore:
    """Factory: build the backend named by the storage configuration."""
    if config.backend == StorageBackend.SQLITE:
        logger.info("Using SQLite document store at %s", config.sqlite_path)
        return SqliteDocumentStore(config.sqlite_path)
    logger.info("Using JSON document store in %s", config.data_dir)
    return JsonDocumentStore(config.data_dir)
