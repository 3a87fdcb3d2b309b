"""SQLite-backed document hierarchy store.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Providers (concrete adapter implementing IHierarchyStore).
# Pattern: Adapter. SQLite behind the IHierarchyStore ABC so the
#          Linker/Persister never sees SQL.
#
# Database: ``data/hierarchy.db`` (HIERARCHY_DB_PATH).
#
#   strategy_documents ─┬─< priority_entries >─┬─ planning_documents
#                       └──────< planning_documents.strategy_doc_id
#   planning_documents ───< tasking_orders.planning_doc_id
#   tasking_orders ─< mission_packages ─< missions ─┬─< waypoints
#                                                   ├─< time_windows
#                                                   ├─< mission_targets
#                                                   ├─< support_requirements
#                                                   └─< space_needs
#   ingest_logs (append-only audit, no FKs)
#
# Every ``insert_*_tree`` runs in one transaction on one connection and
# rolls back completely on any error, so half an order is never visible.
# Uses ``aiosqlite`` for async I/O, ``PRAGMA foreign_keys=ON`` per
# connection, and WAL mode for concurrent readers.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import json
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import aiosqlite
import structlog

from src.interfaces.hierarchy_store import IHierarchyStore
from src.models.ingest import IngestLogEntry
from src.models.normalized import (
    MissionSpec,
    NormalizedOrder,
    NormalizedPlanning,
    NormalizedStrategy,
    PriorityItem,
)
from src.models.records import (
    HierarchyView,
    MissionPackageRecord,
    MissionRecord,
    MissionTargetRecord,
    PlanningDocumentRecord,
    PlanningNode,
    PriorityEntryRecord,
    SpaceNeedRecord,
    StrategyDocumentRecord,
    StrategyNode,
    SupportRequirementRecord,
    TaskingOrderRecord,
    TimeWindowRecord,
    WaypointRecord,
)
from src.utils.errors import PersistenceError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_DB_PATH = Path("data/hierarchy.db")

# ── Schema DDL ────────────────────────────────────────────────────────

_CREATE_TABLES = [
    """\
CREATE TABLE IF NOT EXISTS strategy_documents (
    id              TEXT PRIMARY KEY,
    scenario_id     TEXT NOT NULL,
    title           TEXT NOT NULL,
    doc_type        TEXT NOT NULL,
    content         TEXT NOT NULL,
    authority_level TEXT NOT NULL,
    effective_date  TEXT NOT NULL,
    source_format   TEXT,
    confidence      REAL,
    ingested_at     TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS planning_documents (
    id              TEXT PRIMARY KEY,
    scenario_id     TEXT NOT NULL,
    strategy_doc_id TEXT REFERENCES strategy_documents(id) ON DELETE SET NULL,
    title           TEXT NOT NULL,
    doc_type        TEXT NOT NULL,
    content         TEXT NOT NULL,
    authority_level TEXT NOT NULL DEFAULT '',
    effective_date  TEXT NOT NULL,
    source_format   TEXT,
    confidence      REAL,
    ingested_at     TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS priority_entries (
    id              TEXT PRIMARY KEY,
    strategy_doc_id TEXT REFERENCES strategy_documents(id) ON DELETE CASCADE,
    planning_doc_id TEXT REFERENCES planning_documents(id) ON DELETE CASCADE,
    rank            INTEGER NOT NULL CHECK (rank > 0),
    target_id       TEXT,
    effect          TEXT NOT NULL,
    description     TEXT NOT NULL,
    justification   TEXT NOT NULL,
    created_at      TEXT NOT NULL,
    CHECK ((strategy_doc_id IS NULL) <> (planning_doc_id IS NULL))
);
""",
    """\
CREATE TABLE IF NOT EXISTS tasking_orders (
    id                TEXT PRIMARY KEY,
    scenario_id       TEXT NOT NULL,
    planning_doc_id   TEXT REFERENCES planning_documents(id) ON DELETE SET NULL,
    order_type        TEXT NOT NULL,
    order_id          TEXT NOT NULL,
    issuing_authority TEXT NOT NULL,
    effective_start   TEXT NOT NULL,
    effective_end     TEXT NOT NULL,
    classification    TEXT NOT NULL DEFAULT 'UNCLASSIFIED',
    ato_day_number    INTEGER,
    raw_text          TEXT,
    raw_format        TEXT,
    source_format     TEXT,
    confidence        REAL,
    ingested_at       TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS mission_packages (
    id               TEXT PRIMARY KEY,
    tasking_order_id TEXT NOT NULL REFERENCES tasking_orders(id) ON DELETE CASCADE,
    package_id       TEXT NOT NULL,
    priority_rank    INTEGER NOT NULL,
    mission_type     TEXT NOT NULL,
    effect_desired   TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS missions (
    id                 TEXT PRIMARY KEY,
    mission_package_id TEXT NOT NULL REFERENCES mission_packages(id) ON DELETE CASCADE,
    mission_id         TEXT NOT NULL,
    callsign           TEXT,
    domain             TEXT NOT NULL,
    platform_type      TEXT NOT NULL,
    platform_count     INTEGER NOT NULL DEFAULT 1,
    mission_type       TEXT NOT NULL,
    status             TEXT NOT NULL DEFAULT 'PLANNED',
    created_at         TEXT NOT NULL,
    updated_at         TEXT NOT NULL
);
""",
    """\
CREATE TABLE IF NOT EXISTS waypoints (
    id            TEXT PRIMARY KEY,
    mission_id    TEXT NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
    waypoint_type TEXT NOT NULL,
    sequence      INTEGER NOT NULL,
    latitude      REAL NOT NULL,
    longitude     REAL NOT NULL,
    altitude_ft   REAL,
    speed_kts     REAL,
    name          TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS time_windows (
    id          TEXT PRIMARY KEY,
    mission_id  TEXT NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
    window_type TEXT NOT NULL,
    start_time  TEXT NOT NULL,
    end_time    TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS mission_targets (
    id                 TEXT PRIMARY KEY,
    mission_id         TEXT NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
    target_id          TEXT NOT NULL,
    be_number          TEXT,
    target_name        TEXT NOT NULL,
    latitude           REAL NOT NULL,
    longitude          REAL NOT NULL,
    target_category    TEXT,
    priority_rank      INTEGER,
    desired_effect     TEXT NOT NULL,
    collateral_concern TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS support_requirements (
    id           TEXT PRIMARY KEY,
    mission_id   TEXT NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
    support_type TEXT NOT NULL,
    details      TEXT
);
""",
    """\
CREATE TABLE IF NOT EXISTS space_needs (
    id              TEXT PRIMARY KEY,
    mission_id      TEXT NOT NULL REFERENCES missions(id) ON DELETE CASCADE,
    capability_type TEXT NOT NULL,
    priority        INTEGER NOT NULL,
    start_time      TEXT NOT NULL,
    end_time        TEXT NOT NULL,
    fulfilled       INTEGER NOT NULL DEFAULT 0
);
""",
    """\
CREATE TABLE IF NOT EXISTS ingest_logs (
    id                TEXT PRIMARY KEY,
    scenario_id       TEXT NOT NULL,
    input_hash        TEXT NOT NULL,
    hierarchy_level   TEXT NOT NULL,
    document_type     TEXT NOT NULL,
    source_format     TEXT NOT NULL,
    confidence        REAL NOT NULL,
    created_record_id TEXT NOT NULL,
    parent_link_id    TEXT,
    extracted_counts  TEXT NOT NULL DEFAULT '{}',
    review_flag_count INTEGER NOT NULL DEFAULT 0,
    parse_time_ms     INTEGER NOT NULL,
    created_at        TEXT NOT NULL
);
""",
]

_CREATE_INDICES = [
    "CREATE INDEX IF NOT EXISTS idx_strategy_scenario ON strategy_documents(scenario_id, effective_date);",
    "CREATE INDEX IF NOT EXISTS idx_planning_scenario ON planning_documents(scenario_id, effective_date);",
    "CREATE INDEX IF NOT EXISTS idx_priority_strategy ON priority_entries(strategy_doc_id);",
    "CREATE INDEX IF NOT EXISTS idx_priority_planning ON priority_entries(planning_doc_id);",
    "CREATE INDEX IF NOT EXISTS idx_orders_scenario ON tasking_orders(scenario_id);",
    "CREATE INDEX IF NOT EXISTS idx_packages_order ON mission_packages(tasking_order_id);",
    "CREATE INDEX IF NOT EXISTS idx_missions_package ON missions(mission_package_id);",
    "CREATE INDEX IF NOT EXISTS idx_ingest_scenario ON ingest_logs(scenario_id, created_at);",
    "CREATE INDEX IF NOT EXISTS idx_ingest_hash ON ingest_logs(scenario_id, input_hash);",
]

# ── DML ───────────────────────────────────────────────────────────────

_INSERT_STRATEGY = """\
INSERT INTO strategy_documents (id, scenario_id, title, doc_type, content, authority_level,
                                effective_date, source_format, confidence, ingested_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_PLANNING = """\
INSERT INTO planning_documents (id, scenario_id, strategy_doc_id, title, doc_type, content,
                                authority_level, effective_date, source_format, confidence,
                                ingested_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_PRIORITY = """\
INSERT INTO priority_entries (id, strategy_doc_id, planning_doc_id, rank, target_id, effect,
                              description, justification, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_ORDER = """\
INSERT INTO tasking_orders (id, scenario_id, planning_doc_id, order_type, order_id,
                            issuing_authority, effective_start, effective_end, classification,
                            ato_day_number, raw_text, raw_format, source_format, confidence,
                            ingested_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_PACKAGE = """\
INSERT INTO mission_packages (id, tasking_order_id, package_id, priority_rank, mission_type,
                              effect_desired)
VALUES (?, ?, ?, ?, ?, ?);
"""

_INSERT_MISSION = """\
INSERT INTO missions (id, mission_package_id, mission_id, callsign, domain, platform_type,
                      platform_count, mission_type, status, created_at, updated_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, 'PLANNED', ?, ?);
"""

_INSERT_WAYPOINT = """\
INSERT INTO waypoints (id, mission_id, waypoint_type, sequence, latitude, longitude,
                       altitude_ft, speed_kts, name)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_TIME_WINDOW = """\
INSERT INTO time_windows (id, mission_id, window_type, start_time, end_time)
VALUES (?, ?, ?, ?, ?);
"""

_INSERT_TARGET = """\
INSERT INTO mission_targets (id, mission_id, target_id, be_number, target_name, latitude,
                             longitude, target_category, priority_rank, desired_effect,
                             collateral_concern)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

_INSERT_SUPPORT = """\
INSERT INTO support_requirements (id, mission_id, support_type, details)
VALUES (?, ?, ?, ?);
"""

_INSERT_SPACE_NEED = """\
INSERT INTO space_needs (id, mission_id, capability_type, priority, start_time, end_time)
VALUES (?, ?, ?, ?, ?, ?);
"""

_INSERT_INGEST_LOG = """\
INSERT INTO ingest_logs (id, scenario_id, input_hash, hierarchy_level, document_type,
                         source_format, confidence, created_record_id, parent_link_id,
                         extracted_counts, review_flag_count, parse_time_ms, created_at)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
"""

# Effective date ties are broken by arrival so the choice is deterministic.
_SELECT_STRATEGIES = """\
SELECT * FROM strategy_documents
WHERE scenario_id = ?
ORDER BY effective_date DESC, ingested_at DESC;
"""

_SELECT_LATEST_STRATEGY = """\
SELECT * FROM strategy_documents
WHERE scenario_id = ?
ORDER BY effective_date DESC, ingested_at DESC
LIMIT 1;
"""

_SELECT_PLANNING = """\
SELECT * FROM planning_documents
WHERE scenario_id = ?
ORDER BY effective_date DESC, ingested_at DESC;
"""

_SELECT_PRIORITIES = """\
SELECT * FROM priority_entries
WHERE strategy_doc_id = ? OR planning_doc_id = ?
ORDER BY rank ASC, created_at ASC;
"""

_SELECT_ORDERS = """\
SELECT * FROM tasking_orders
WHERE scenario_id = ?
ORDER BY effective_start DESC, ingested_at DESC;
"""


def _new_id() -> str:
    return str(uuid.uuid4())


def _iso(value: datetime) -> str:
    """Fixed-width UTC ISO-8601 so lexical order equals time order."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)  # noqa: UP017
    return value.astimezone(timezone.utc).isoformat(timespec="microseconds")  # noqa: UP017


def _now_iso() -> str:
    return _iso(datetime.now(tz=timezone.utc))  # noqa: UP017


class SQLiteHierarchyStore(IHierarchyStore):
    """SQLite-backed hierarchy persistence."""

    def __init__(self, db_path: str | Path = _DEFAULT_DB_PATH) -> None:
        self._db_path = Path(db_path)

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(str(self._db_path)) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            yield db

    async def initialize(self) -> None:
        """Create all hierarchy tables and indices if they don't exist."""
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            for table_sql in _CREATE_TABLES:
                await db.execute(table_sql)
            for idx_sql in _CREATE_INDICES:
                await db.execute(idx_sql)
            await db.commit()
        logger.info("hierarchy_db_initialized", path=str(self._db_path))

    def get_provider_name(self) -> str:
        return "sqlite_hierarchy"

    # ── Transactional tree writes ─────────────────────────────────────

    @asynccontextmanager
    async def _transaction(self, operation: str, scenario_id: str) -> AsyncIterator[aiosqlite.Connection]:
        """Yield a connection inside one transaction; roll back on any error."""
        async with self._connect() as db:
            try:
                await db.execute("BEGIN;")
                yield db
                await db.commit()
            except Exception as exc:
                await db.rollback()
                logger.error(
                    "hierarchy_write_rolled_back",
                    operation=operation,
                    scenario_id=scenario_id,
                    error=str(exc),
                )
                if isinstance(exc, PersistenceError):
                    raise
                raise PersistenceError(
                    message=f"{operation} failed and was rolled back: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

    async def insert_strategy_tree(
        self,
        scenario_id: str,
        payload: NormalizedStrategy,
        *,
        source_format: str,
        confidence: float,
    ) -> str:
        doc_id = _new_id()
        now = _now_iso()
        async with self._transaction("insert_strategy_tree", scenario_id) as db:
            await db.execute(_INSERT_STRATEGY, (
                doc_id,
                scenario_id,
                payload.title,
                payload.doc_type,
                payload.content,
                payload.authority_level,
                _iso(payload.effective_date),
                source_format,
                confidence,
                now,
            ))
            await self._write_priorities(db, payload.priorities, strategy_doc_id=doc_id, now=now)

        logger.info(
            "strategy_document_persisted",
            scenario_id=scenario_id,
            doc_id=doc_id,
            priorities=len(payload.priorities),
        )
        return doc_id

    async def insert_planning_tree(
        self,
        scenario_id: str,
        payload: NormalizedPlanning,
        *,
        strategy_doc_id: str | None,
        source_format: str,
        confidence: float,
    ) -> str:
        doc_id = _new_id()
        now = _now_iso()
        async with self._transaction("insert_planning_tree", scenario_id) as db:
            if strategy_doc_id is not None:
                await self._require_in_scenario(db, "strategy_documents", strategy_doc_id, scenario_id)
            await db.execute(_INSERT_PLANNING, (
                doc_id,
                scenario_id,
                strategy_doc_id,
                payload.title,
                payload.doc_type,
                payload.content,
                payload.authority_level,
                _iso(payload.effective_date),
                source_format,
                confidence,
                now,
            ))
            await self._write_priorities(db, payload.priorities, planning_doc_id=doc_id, now=now)

        logger.info(
            "planning_document_persisted",
            scenario_id=scenario_id,
            doc_id=doc_id,
            strategy_doc_id=strategy_doc_id,
            priorities=len(payload.priorities),
        )
        return doc_id

    async def insert_order_tree(
        self,
        scenario_id: str,
        payload: NormalizedOrder,
        *,
        planning_doc_id: str | None,
        confidence: float,
    ) -> str:
        order_pk = _new_id()
        now = _now_iso()
        async with self._transaction("insert_order_tree", scenario_id) as db:
            if planning_doc_id is not None:
                await self._require_in_scenario(db, "planning_documents", planning_doc_id, scenario_id)
            await db.execute(_INSERT_ORDER, (
                order_pk,
                scenario_id,
                planning_doc_id,
                payload.order_type.value,
                payload.order_id,
                payload.issuing_authority,
                _iso(payload.effective_start),
                _iso(payload.effective_end),
                payload.classification.value,
                payload.ato_day_number,
                payload.raw_text,
                payload.raw_format,
                payload.raw_format,
                confidence,
                now,
            ))
            for package in payload.mission_packages:
                package_pk = _new_id()
                await db.execute(_INSERT_PACKAGE, (
                    package_pk,
                    order_pk,
                    package.package_id,
                    package.priority_rank,
                    package.mission_type,
                    package.effect_desired,
                ))
                for mission in package.missions:
                    await self._write_mission(db, package_pk, mission, now)

        logger.info(
            "tasking_order_persisted",
            scenario_id=scenario_id,
            order_pk=order_pk,
            order_id=payload.order_id,
            planning_doc_id=planning_doc_id,
            missions=len(payload.missions),
        )
        return order_pk

    async def append_ingest_log(self, entry: IngestLogEntry) -> None:
        try:
            async with self._connect() as db:
                await db.execute(_INSERT_INGEST_LOG, (
                    entry.id,
                    entry.scenario_id,
                    entry.input_hash,
                    entry.hierarchy_level.value,
                    entry.document_type,
                    entry.source_format,
                    entry.confidence,
                    entry.created_record_id,
                    entry.parent_link_id,
                    json.dumps(entry.extracted_counts),
                    entry.review_flag_count,
                    entry.parse_time_ms,
                    _iso(entry.created_at),
                ))
                await db.commit()
        except aiosqlite.Error as exc:
            raise PersistenceError(
                message=f"Failed to append ingest log: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    # ── Write helpers ─────────────────────────────────────────────────

    async def _require_in_scenario(
        self,
        db: aiosqlite.Connection,
        table: str,
        doc_id: str,
        scenario_id: str,
    ) -> None:
        # table is one of two literals chosen above, never caller input.
        cursor = await db.execute(
            f"SELECT 1 FROM {table} WHERE id = ? AND scenario_id = ?;",  # noqa: S608
            (doc_id, scenario_id),
        )
        if await cursor.fetchone() is None:
            raise PersistenceError(
                message=f"Parent {doc_id} is not in scenario {scenario_id}",
                provider_name=self.get_provider_name(),
            )

    async def _write_priorities(
        self,
        db: aiosqlite.Connection,
        priorities: list[PriorityItem],
        *,
        now: str,
        strategy_doc_id: str | None = None,
        planning_doc_id: str | None = None,
    ) -> None:
        for item in priorities:
            await db.execute(_INSERT_PRIORITY, (
                _new_id(),
                strategy_doc_id,
                planning_doc_id,
                item.rank,
                item.target_id,
                item.effect,
                item.description,
                item.justification,
                now,
            ))

    async def _write_mission(
        self,
        db: aiosqlite.Connection,
        package_pk: str,
        mission: MissionSpec,
        now: str,
    ) -> None:
        mission_pk = _new_id()
        await db.execute(_INSERT_MISSION, (
            mission_pk,
            package_pk,
            mission.mission_id,
            mission.callsign,
            mission.domain.value,
            mission.platform_type,
            mission.platform_count,
            mission.mission_type,
            now,
            now,
        ))
        for wp in mission.waypoints:
            await db.execute(_INSERT_WAYPOINT, (
                _new_id(), mission_pk, wp.waypoint_type.value, wp.sequence,
                wp.latitude, wp.longitude, wp.altitude_ft, wp.speed_kts, wp.name,
            ))
        for tw in mission.time_windows:
            await db.execute(_INSERT_TIME_WINDOW, (
                _new_id(), mission_pk, tw.window_type.value,
                _iso(tw.start), _iso(tw.end) if tw.end else None,
            ))
        for tgt in mission.targets:
            await db.execute(_INSERT_TARGET, (
                _new_id(), mission_pk, tgt.target_id, tgt.be_number, tgt.target_name,
                tgt.latitude, tgt.longitude, tgt.target_category, tgt.priority_rank,
                tgt.desired_effect, tgt.collateral_concern,
            ))
        for sr in mission.support_requirements:
            await db.execute(_INSERT_SUPPORT, (
                _new_id(), mission_pk, sr.support_type.value, sr.details,
            ))
        for sn in mission.space_needs:
            await db.execute(_INSERT_SPACE_NEED, (
                _new_id(), mission_pk, sn.capability_type.value, sn.priority,
                _iso(sn.start_time), _iso(sn.end_time),
            ))

    # ── Reads ─────────────────────────────────────────────────────────

    async def latest_strategy_document(self, scenario_id: str) -> StrategyDocumentRecord | None:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_LATEST_STRATEGY, (scenario_id,))
            row = await cursor.fetchone()
        if row is None:
            return None
        return StrategyDocumentRecord.model_validate(dict(row))

    async def list_strategy_documents(self, scenario_id: str) -> list[StrategyDocumentRecord]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_STRATEGIES, (scenario_id,))
            rows = await cursor.fetchall()
            return [
                StrategyDocumentRecord.model_validate(
                    {**dict(row), "priorities": await self._fetch_priorities(db, row["id"])}
                )
                for row in rows
            ]

    async def list_planning_documents(self, scenario_id: str) -> list[PlanningDocumentRecord]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_PLANNING, (scenario_id,))
            rows = await cursor.fetchall()
            return [
                PlanningDocumentRecord.model_validate(
                    {**dict(row), "priorities": await self._fetch_priorities(db, row["id"])}
                )
                for row in rows
            ]

    async def get_strategy_document(
        self, scenario_id: str, doc_id: str
    ) -> StrategyDocumentRecord | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM strategy_documents WHERE id = ? AND scenario_id = ?;",
                (doc_id, scenario_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            priorities = await self._fetch_priorities(db, doc_id)
        return StrategyDocumentRecord.model_validate({**dict(row), "priorities": priorities})

    async def get_planning_document(
        self, scenario_id: str, doc_id: str
    ) -> PlanningDocumentRecord | None:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM planning_documents WHERE id = ? AND scenario_id = ?;",
                (doc_id, scenario_id),
            )
            row = await cursor.fetchone()
            if row is None:
                return None
            priorities = await self._fetch_priorities(db, doc_id)
        return PlanningDocumentRecord.model_validate({**dict(row), "priorities": priorities})

    async def list_priorities(self, doc_id: str) -> list[PriorityEntryRecord]:
        async with self._connect() as db:
            return await self._fetch_priorities(db, doc_id)

    async def list_tasking_orders(self, scenario_id: str) -> list[TaskingOrderRecord]:
        async with self._connect() as db:
            cursor = await db.execute(_SELECT_ORDERS, (scenario_id,))
            rows = await cursor.fetchall()
        return [TaskingOrderRecord.model_validate(dict(row)) for row in rows]

    async def get_order_tree(
        self, scenario_id: str, order_id: str
    ) -> TaskingOrderRecord | None:
        """Fetch an order by primary key, or by its textual order id."""
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT * FROM tasking_orders WHERE scenario_id = ? AND (id = ? OR order_id = ?) "
                "ORDER BY ingested_at DESC LIMIT 1;",
                (scenario_id, order_id, order_id),
            )
            order_row = await cursor.fetchone()
            if order_row is None:
                return None

            cursor = await db.execute(
                "SELECT * FROM mission_packages WHERE tasking_order_id = ? "
                "ORDER BY priority_rank ASC, rowid ASC;",
                (order_row["id"],),
            )
            packages: list[MissionPackageRecord] = []
            for pkg_row in await cursor.fetchall():
                missions = await self._fetch_missions(db, pkg_row["id"])
                packages.append(
                    MissionPackageRecord.model_validate({**dict(pkg_row), "missions": missions})
                )

        return TaskingOrderRecord.model_validate(
            {**dict(order_row), "mission_packages": packages}
        )

    async def list_ingest_logs(
        self, scenario_id: str | None = None, limit: int = 50
    ) -> list[IngestLogEntry]:
        async with self._connect() as db:
            if scenario_id:
                cursor = await db.execute(
                    "SELECT * FROM ingest_logs WHERE scenario_id = ? "
                    "ORDER BY created_at DESC, rowid DESC LIMIT ?;",
                    (scenario_id, limit),
                )
            else:
                cursor = await db.execute(
                    "SELECT * FROM ingest_logs ORDER BY created_at DESC, rowid DESC LIMIT ?;",
                    (limit,),
                )
            rows = await cursor.fetchall()
        return [self._row_to_log(dict(row)) for row in rows]

    async def count_ingests_with_hash(self, scenario_id: str, input_hash: str) -> int:
        async with self._connect() as db:
            cursor = await db.execute(
                "SELECT COUNT(*) FROM ingest_logs WHERE scenario_id = ? AND input_hash = ?;",
                (scenario_id, input_hash),
            )
            row = await cursor.fetchone()
        return int(row[0]) if row else 0

    async def get_hierarchy(self, scenario_id: str) -> HierarchyView:
        strategies = await self.list_strategy_documents(scenario_id)
        planning_docs = await self.list_planning_documents(scenario_id)
        orders = await self.list_tasking_orders(scenario_id)

        orders_by_planning: dict[str | None, list[TaskingOrderRecord]] = {}
        for order in orders:
            orders_by_planning.setdefault(order.planning_doc_id, []).append(order)

        planning_by_strategy: dict[str | None, list[PlanningNode]] = {}
        for doc in planning_docs:
            node = PlanningNode(document=doc, orders=orders_by_planning.get(doc.id, []))
            planning_by_strategy.setdefault(doc.strategy_doc_id, []).append(node)

        return HierarchyView(
            scenario_id=scenario_id,
            strategies=[
                StrategyNode(document=doc, planning=planning_by_strategy.get(doc.id, []))
                for doc in strategies
            ],
            unlinked_planning=planning_by_strategy.get(None, []),
            unlinked_orders=orders_by_planning.get(None, []),
        )

    # ── Read helpers ──────────────────────────────────────────────────

    async def _fetch_priorities(
        self, db: aiosqlite.Connection, doc_id: str
    ) -> list[PriorityEntryRecord]:
        cursor = await db.execute(_SELECT_PRIORITIES, (doc_id, doc_id))
        rows = await cursor.fetchall()
        return [PriorityEntryRecord.model_validate(dict(row)) for row in rows]

    async def _fetch_missions(
        self, db: aiosqlite.Connection, package_pk: str
    ) -> list[MissionRecord]:
        cursor = await db.execute(
            "SELECT * FROM missions WHERE mission_package_id = ? ORDER BY rowid ASC;",
            (package_pk,),
        )
        missions: list[MissionRecord] = []
        for row in await cursor.fetchall():
            mission_pk = row["id"]
            children: dict[str, Any] = {
                "waypoints": [
                    WaypointRecord.model_validate(r)
                    for r in await self._fetch_children(db, "waypoints", mission_pk, "sequence ASC")
                ],
                "time_windows": [
                    TimeWindowRecord.model_validate(r)
                    for r in await self._fetch_children(db, "time_windows", mission_pk, "start_time ASC")
                ],
                "targets": [
                    MissionTargetRecord.model_validate(r)
                    for r in await self._fetch_children(db, "mission_targets", mission_pk)
                ],
                "support_requirements": [
                    SupportRequirementRecord.model_validate(r)
                    for r in await self._fetch_children(db, "support_requirements", mission_pk)
                ],
                "space_needs": [
                    SpaceNeedRecord.model_validate(r)
                    for r in await self._fetch_children(db, "space_needs", mission_pk, "priority ASC")
                ],
            }
            missions.append(MissionRecord.model_validate({**dict(row), **children}))
        return missions

    @staticmethod
    async def _fetch_children(
        db: aiosqlite.Connection,
        table: str,
        mission_pk: str,
        order_by: str = "rowid ASC",
    ) -> list[dict[str, Any]]:
        # table / order_by are internal literals, never caller input.
        cursor = await db.execute(
            f"SELECT * FROM {table} WHERE mission_id = ? ORDER BY {order_by};",  # noqa: S608
            (mission_pk,),
        )
        return [dict(r) for r in await cursor.fetchall()]

    @staticmethod
    def _row_to_log(row: dict[str, Any]) -> IngestLogEntry:
        row["extracted_counts"] = json.loads(row.get("extracted_counts") or "{}")
        return IngestLogEntry.model_validate(row)
