"""SQLite-backed per-user key/value properties."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path
from typing import Optional

import sqlite_utils


class PropertyStore:
    """Durable string properties scoped to one user."""

    TABLE = "user_properties"

    def __init__(self, db_path: Path, user: str) -> None:
        self.db_path = db_path
        self.user = user
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db = sqlite_utils.Database(str(db_path))
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.db[self.TABLE].create(
            {
                "user": str,
                "key": str,
                "value": str,
                "updated_at": str,
            },
            pk=("user", "key"),
            if_not_exists=True,
        )

    def get(self, key: str) -> Optional[str]:
        rows = list(
            self.db[self.TABLE].rows_where(
                "user = ? and key = ?", [self.user, key], select="value", limit=1
            )
        )
        if not rows:
            return None
        return rows[0]["value"]

    def set(self, key: str, value: str) -> None:
        self.db[self.TABLE].upsert(
            {
                "user": self.user,
                "key": key,
                "value": value,
                "updated_at": datetime.now(tz=UTC).isoformat(),
            },
            pk=("user", "key"),
        )

    def delete(self, key: str) -> None:
        self.db[self.TABLE].delete_where("user = ? and key = ?", [self.user, key])

    def keys(self, prefix: str = "") -> list[str]:
        rows = self.db[self.TABLE].rows_where(
            # substr instead of LIKE: "_" in prefixes must match literally.
            "user = ? and substr(key, 1, ?) = ?",
            [self.user, len(prefix), prefix],
            select="key",
            order_by="key",
        )
        return [row["key"] for row in rows]
