"""SQLite storage for specs, versions and their step graphs.

``SpecStore`` is the repository the HTTP layer talks to; routes receive it
through the ``get_store`` dependency so tests can point it at a temporary
database. Every write runs in a single transaction: a failed snapshot
replace or fork leaves the previous state untouched.
"""

import json
import logging
import os
import sqlite3
from contextlib import contextmanager
from functools import lru_cache
from pathlib import Path
from typing import Iterator

from specgraph.models.graph_snapshot import GraphSnapshot, Position, Step, StepType, Transition
from specgraph.models.spec_version import (
    Spec,
    SpecCreate,
    SpecListItem,
    SpecVersion,
    SpecWithVersion,
    User,
    UserCreate,
    VersionStatus,
)
from specgraph.utils.timestamps import utc_timestamp

logger = logging.getLogger(__name__)

DEFAULT_DB_PATH = Path(__file__).parent / "data" / "specs.db"
SPEC_DB_PATH = Path(os.getenv("SPEC_DB_PATH", str(DEFAULT_DB_PATH)))

INITIAL_VERSION_COMMENT = "Первая версия"
FORK_COMMENT_TEMPLATE = "Новая версия на основе {number}"


class NotFoundError(LookupError):
    """A referenced user, spec or version does not exist."""


class ConflictError(ValueError):
    """A write violates a uniqueness constraint."""


def _dump_metadata(metadata: dict | None) -> str | None:
    return json.dumps(metadata, ensure_ascii=False) if metadata is not None else None


def _load_metadata(raw: str | None) -> dict | None:
    return json.loads(raw) if raw else None


class SpecStore:
    """Repository for users, specs, versions and version snapshots."""

    def __init__(self, db_path: Path | str) -> None:
        self.db_path = Path(db_path)

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.row_factory = sqlite3.Row
        conn.execute("pragma foreign_keys = on")
        return conn

    @contextmanager
    def _read(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction; commit on success, roll back on error."""
        conn = self._connect()
        try:
            with conn:
                conn.execute("begin immediate")
                yield conn
        finally:
            conn.close()

    def init_db(self) -> None:
        with self._transaction() as conn:
            conn.execute(
                """
                create table if not exists users (
                    id integer primary key autoincrement,
                    username text not null unique,
                    full_name text,
                    email text unique,
                    created_at text not null
                )
                """
            )
            conn.execute(
                """
                create table if not exists specs (
                    id integer primary key autoincrement,
                    title text not null,
                    code text,
                    description text,
                    created_at text not null,
                    created_by_id integer references users(id) on delete set null,
                    current_version_id integer unique
                        references spec_versions(id) on delete set null
                )
                """
            )
            conn.execute(
                """
                create table if not exists spec_versions (
                    id integer primary key autoincrement,
                    spec_id integer not null references specs(id),
                    version_number integer not null,
                    status text not null default 'draft',
                    created_at text not null,
                    comment text,
                    plain_text text,
                    created_by_id integer references users(id) on delete set null,
                    based_on_version_id integer
                        references spec_versions(id) on delete set null,
                    unique (spec_id, version_number)
                )
                """
            )
            conn.execute(
                """
                create table if not exists spec_steps (
                    id integer primary key autoincrement,
                    version_id integer not null references spec_versions(id),
                    step_key text not null,
                    type text not null,
                    title text not null,
                    description text,
                    pos_x real not null default 0,
                    pos_y real not null default 0,
                    metadata_json text,
                    unique (version_id, step_key)
                )
                """
            )
            conn.execute(
                """
                create table if not exists spec_step_transitions (
                    id integer primary key autoincrement,
                    version_id integer not null references spec_versions(id),
                    from_step_id integer not null references spec_steps(id),
                    to_step_id integer not null references spec_steps(id),
                    label text,
                    condition text,
                    metadata_json text
                )
                """
            )
            conn.execute(
                "create index if not exists idx_spec_versions_spec_id on spec_versions(spec_id)"
            )
            conn.execute(
                "create index if not exists idx_spec_steps_version_id on spec_steps(version_id)"
            )
            conn.execute(
                """
                create index if not exists idx_spec_step_transitions_version_id
                on spec_step_transitions(version_id)
                """
            )

    # --- Users ---

    def create_user(self, data: UserCreate) -> User:
        try:
            with self._transaction() as conn:
                cursor = conn.execute(
                    """
                    insert into users (username, full_name, email, created_at)
                    values (?, ?, ?, ?)
                    """,
                    (data.username, data.full_name, data.email, utc_timestamp()),
                )
                row = conn.execute(
                    "select * from users where id = ?", (cursor.lastrowid,)
                ).fetchone()
        except sqlite3.IntegrityError as exc:
            raise ConflictError(f"User already exists: {data.username}") from exc
        return User.model_validate(dict(row))

    def list_users(self) -> list[User]:
        with self._read() as conn:
            rows = conn.execute("select * from users order by id asc").fetchall()
        return [User.model_validate(dict(row)) for row in rows]

    def get_user(self, user_id: int) -> User:
        with self._read() as conn:
            row = conn.execute("select * from users where id = ?", (user_id,)).fetchone()
        if not row:
            raise NotFoundError(f"User not found: {user_id}")
        return User.model_validate(dict(row))

    # --- Specs ---

    def _require_user(self, conn: sqlite3.Connection, user_id: int | None) -> None:
        if user_id is None:
            return
        if not conn.execute("select 1 from users where id = ?", (user_id,)).fetchone():
            raise NotFoundError(f"User not found: {user_id}")

    def create_spec(self, data: SpecCreate) -> SpecWithVersion:
        """Create a spec together with its first, empty draft version."""
        now = utc_timestamp()
        with self._transaction() as conn:
            self._require_user(conn, data.created_by_id)
            spec_id = conn.execute(
                """
                insert into specs (title, code, description, created_at, created_by_id)
                values (?, ?, ?, ?, ?)
                """,
                (data.title, data.code, data.description, now, data.created_by_id),
            ).lastrowid
            version_id = conn.execute(
                """
                insert into spec_versions (
                    spec_id, version_number, status, created_at, comment, created_by_id
                )
                values (?, 1, ?, ?, ?, ?)
                """,
                (spec_id, VersionStatus.draft.value, now, INITIAL_VERSION_COMMENT, data.created_by_id),
            ).lastrowid
            conn.execute(
                "update specs set current_version_id = ? where id = ?",
                (version_id, spec_id),
            )
            spec = self._spec_row(conn, spec_id)
            version = self._version_row(conn, version_id)

        logger.info("created spec %d with version %d", spec_id, version_id)
        return SpecWithVersion(spec=spec, version=version)

    def list_specs(self) -> list[SpecListItem]:
        """List all specs with their current version."""
        with self._read() as conn:
            spec_rows = conn.execute("select * from specs order by id asc").fetchall()
            items = []
            for row in spec_rows:
                current = None
                if row["current_version_id"] is not None:
                    current = self._version_row(conn, row["current_version_id"])
                items.append(SpecListItem(**dict(row), current_version=current))
        return items

    def get_spec(self, spec_id: int) -> Spec:
        with self._read() as conn:
            return self._spec_row(conn, spec_id)

    def _spec_row(self, conn: sqlite3.Connection, spec_id: int) -> Spec:
        row = conn.execute("select * from specs where id = ?", (spec_id,)).fetchone()
        if not row:
            raise NotFoundError(f"Spec not found: {spec_id}")
        return Spec.model_validate(dict(row))

    # --- Versions ---

    def _version_row(self, conn: sqlite3.Connection, version_id: int) -> SpecVersion:
        row = conn.execute(
            "select * from spec_versions where id = ?", (version_id,)
        ).fetchone()
        if not row:
            raise NotFoundError(f"Version not found: {version_id}")
        return SpecVersion.model_validate(dict(row))

    def list_versions(self, spec_id: int) -> list[SpecVersion]:
        with self._read() as conn:
            self._spec_row(conn, spec_id)
            rows = conn.execute(
                "select * from spec_versions where spec_id = ? order by version_number asc",
                (spec_id,),
            ).fetchall()
        return [SpecVersion.model_validate(dict(row)) for row in rows]

    def get_version(self, version_id: int) -> SpecVersion:
        with self._read() as conn:
            return self._version_row(conn, version_id)

    def get_version_by_number(self, spec_id: int, version_number: int) -> SpecVersion:
        with self._read() as conn:
            row = conn.execute(
                "select * from spec_versions where spec_id = ? and version_number = ?",
                (spec_id, version_number),
            ).fetchone()
        if not row:
            raise NotFoundError(f"Version not found: spec {spec_id} v{version_number}")
        return SpecVersion.model_validate(dict(row))

    def fork_version(
        self,
        spec_id: int,
        version_number: int,
        created_by_id: int | None = None,
        comment: str | None = None,
    ) -> SpecVersion:
        """Create a new draft version holding a deep copy of an existing one.

        The new version takes the next unused number of the spec and records
        the source version as ``based_on_version_id``. Steps and transitions
        get new row ids but keep their keys and labels.
        """
        with self._transaction() as conn:
            self._require_user(conn, created_by_id)
            base = conn.execute(
                "select * from spec_versions where spec_id = ? and version_number = ?",
                (spec_id, version_number),
            ).fetchone()
            if not base:
                raise NotFoundError(f"Base version not found: spec {spec_id} v{version_number}")

            last_number = conn.execute(
                "select max(version_number) from spec_versions where spec_id = ?",
                (spec_id,),
            ).fetchone()[0]
            new_number = (last_number or 0) + 1

            new_version_id = conn.execute(
                """
                insert into spec_versions (
                    spec_id,
                    version_number,
                    status,
                    created_at,
                    comment,
                    created_by_id,
                    based_on_version_id
                )
                values (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    spec_id,
                    new_number,
                    VersionStatus.draft.value,
                    utc_timestamp(),
                    comment or FORK_COMMENT_TEMPLATE.format(number=version_number),
                    created_by_id,
                    base["id"],
                ),
            ).lastrowid

            step_ids: dict[int, int] = {}
            for step in conn.execute(
                "select * from spec_steps where version_id = ? order by id", (base["id"],)
            ).fetchall():
                step_ids[step["id"]] = conn.execute(
                    """
                    insert into spec_steps (
                        version_id, step_key, type, title, description, pos_x, pos_y, metadata_json
                    )
                    values (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        new_version_id,
                        step["step_key"],
                        step["type"],
                        step["title"],
                        step["description"],
                        step["pos_x"],
                        step["pos_y"],
                        step["metadata_json"],
                    ),
                ).lastrowid

            for transition in conn.execute(
                "select * from spec_step_transitions where version_id = ? order by id",
                (base["id"],),
            ).fetchall():
                conn.execute(
                    """
                    insert into spec_step_transitions (
                        version_id, from_step_id, to_step_id, label, condition, metadata_json
                    )
                    values (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        new_version_id,
                        step_ids[transition["from_step_id"]],
                        step_ids[transition["to_step_id"]],
                        transition["label"],
                        transition["condition"],
                        transition["metadata_json"],
                    ),
                )

            version = self._version_row(conn, new_version_id)

        logger.info(
            "forked spec %d v%d into v%d (version %d)",
            spec_id,
            version_number,
            new_number,
            new_version_id,
        )
        return version

    def set_status(self, version_id: int, status: VersionStatus) -> SpecVersion:
        """Set a version's status; publishing also makes it the spec's current version."""
        with self._transaction() as conn:
            version = self._version_row(conn, version_id)
            conn.execute(
                "update spec_versions set status = ? where id = ?",
                (status.value, version_id),
            )
            if status == VersionStatus.published:
                # a spec has at most one current version; it is this one now
                conn.execute(
                    "update specs set current_version_id = ? where id = ?",
                    (version_id, version.spec_id),
                )
            updated = self._version_row(conn, version_id)

        logger.info("version %d status set to %s", version_id, status.value)
        return updated

    # --- Snapshots ---

    def _snapshot_rows(
        self, conn: sqlite3.Connection, version_id: int
    ) -> tuple[list[sqlite3.Row], list[sqlite3.Row]]:
        self._version_row(conn, version_id)
        steps = conn.execute(
            "select * from spec_steps where version_id = ? order by id", (version_id,)
        ).fetchall()
        transitions = conn.execute(
            "select * from spec_step_transitions where version_id = ? order by id",
            (version_id,),
        ).fetchall()
        return steps, transitions

    def load_snapshot(self, version_id: int) -> GraphSnapshot:
        """Load the step graph of a version."""
        return self.load_snapshot_with_ids(version_id)[0]

    def load_snapshot_with_ids(self, version_id: int) -> tuple[GraphSnapshot, list[int]]:
        """Load the step graph of a version and the row ids of its transitions.

        The ids are parallel to ``snapshot.transitions``.
        """
        with self._read() as conn:
            step_rows, transition_rows = self._snapshot_rows(conn, version_id)

        keys_by_id = {row["id"]: row["step_key"] for row in step_rows}
        steps = [
            Step(
                key=row["step_key"],
                type=StepType(row["type"]),
                title=row["title"],
                description=row["description"],
                position=Position(x=row["pos_x"], y=row["pos_y"]),
                metadata=_load_metadata(row["metadata_json"]),
            )
            for row in step_rows
        ]

        transitions = []
        transition_ids = []
        for row in transition_rows:
            from_key = keys_by_id.get(row["from_step_id"])
            to_key = keys_by_id.get(row["to_step_id"])
            if from_key is None or to_key is None:
                logger.warning("transition %d of version %d crosses versions", row["id"], version_id)
                continue
            transitions.append(
                Transition(
                    from_key=from_key,
                    to_key=to_key,
                    label=row["label"],
                    condition=row["condition"],
                    metadata=_load_metadata(row["metadata_json"]),
                )
            )
            transition_ids.append(row["id"])

        return GraphSnapshot(steps=steps, transitions=transitions), transition_ids

    def save_snapshot(
        self,
        version_id: int,
        snapshot: GraphSnapshot,
        plain_text: str | None = None,
        comment: str | None = None,
    ) -> SpecVersion:
        """Replace the whole step graph of a version.

        Old transitions and steps are deleted and the snapshot recreated in
        one transaction, so readers see either the old or the new graph.
        ``plain_text`` and ``comment`` are only updated when given.
        """
        with self._transaction() as conn:
            self._version_row(conn, version_id)
            conn.execute("delete from spec_step_transitions where version_id = ?", (version_id,))
            conn.execute("delete from spec_steps where version_id = ?", (version_id,))

            step_ids: dict[str, int] = {}
            for step in snapshot.steps:
                step_ids[step.key] = conn.execute(
                    """
                    insert into spec_steps (
                        version_id, step_key, type, title, description, pos_x, pos_y, metadata_json
                    )
                    values (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        version_id,
                        step.key,
                        step.type.value,
                        step.title,
                        step.description,
                        step.position.x,
                        step.position.y,
                        _dump_metadata(step.metadata),
                    ),
                ).lastrowid

            for transition in snapshot.transitions:
                conn.execute(
                    """
                    insert into spec_step_transitions (
                        version_id, from_step_id, to_step_id, label, condition, metadata_json
                    )
                    values (?, ?, ?, ?, ?, ?)
                    """,
                    (
                        version_id,
                        step_ids[transition.from_key],
                        step_ids[transition.to_key],
                        transition.label,
                        transition.condition,
                        _dump_metadata(transition.metadata),
                    ),
                )

            if plain_text is not None:
                conn.execute(
                    "update spec_versions set plain_text = ? where id = ?", (plain_text, version_id)
                )
            if comment is not None:
                conn.execute(
                    "update spec_versions set comment = ? where id = ?", (comment, version_id)
                )
            version = self._version_row(conn, version_id)

        logger.info(
            "saved version %d: %d steps, %d transitions",
            version_id,
            len(snapshot.steps),
            len(snapshot.transitions),
        )
        return version


@lru_cache(maxsize=1)
def get_store() -> SpecStore:
    """FastAPI dependency returning the process-wide store."""
    return SpecStore(SPEC_DB_PATH)
