"""
Test-data wiper for development databases.

Deletes every row of the class-related tables, children before parents.
The first failing table aborts the run; tables already wiped stay wiped.
Profiles and auth users are never touched.
"""
from __future__ import annotations

from typing import Any, List, Sequence, Tuple
import logging


logger = logging.getLogger("studycore.maintenance")

WIPE_ORDER: Tuple[str, ...] = (
    "submissions",
    "resources",
    "assignments",
    "schedules",
    "messages",
    "enrollments",
    "classes",
)

# PostgREST refuses unfiltered deletes; this filter matches every row.
_NIL_UUID = "00000000-0000-0000-0000-000000000000"


class DataWipeError(RuntimeError):
    def __init__(self, table: str, wiped: Sequence[str]) -> None:
        super().__init__(f"wipe failed at table {table}")
        self.table = table
        self.wiped = list(wiped)


class DataWiper:
    def __init__(self, client: Any, tables: Sequence[str] = WIPE_ORDER) -> None:
        self._client = client
        self.tables = tuple(tables)

    async def wipe_all(self) -> List[str]:
        """Delete all rows table by table; returns the tables wiped."""
        wiped: List[str] = []
        for table in self.tables:
            try:
                await self._client.table(table).delete().neq("id", _NIL_UUID).execute()
            except Exception as exc:
                logger.warning("wipe of %s failed: %s", table, exc.__class__.__name__)
                raise DataWipeError(table, wiped) from exc
            wiped.append(table)
            logger.info("wiped table %s", table)
        return wiped


__all__ = ["DataWipeError", "DataWiper", "WIPE_ORDER"]
