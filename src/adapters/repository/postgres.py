"""
PostgreSQL repository adapter - Implements RegistrationRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Consistency Design:
-------------------
1. **Email uniqueness**: the UNIQUE constraint on registrations.email is
   the arbiter. insert() uses INSERT ... ON CONFLICT DO NOTHING, so two
   concurrent submissions for one email produce exactly one row.

2. **Confirmation vs. sweep**: set_confirmed() only updates rows with
   confirmed = FALSE and delete_expired() only deletes rows with
   confirmed = FALSE. A row is therefore either confirmed or swept,
   never both, without explicit locking.

3. **Field updates**: no version column. Concurrent decisions on the same
   record are last-write-wins.
"""

import json
import logging
from datetime import datetime
from pathlib import Path

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

from src.domain.records import ApprovalStatus, RegistrationCandidate, RegistrationRecord

logger = logging.getLogger(__name__)

_COLUMNS = """
    id, tenant_id, first_name, last_name, email, country, gender, position,
    domain, comments, interests, confirmed, approved, assessor,
    time_created, time_modified
"""


def _to_record(row: dict) -> RegistrationRecord:
    return RegistrationRecord(
        id=row["id"],
        tenant_id=row["tenant_id"],
        first_name=row["first_name"],
        last_name=row["last_name"],
        email=row["email"],
        country=row["country"],
        gender=row["gender"],
        position=row["position"],
        domain=row["domain"],
        comments=row["comments"],
        interests=tuple(json.loads(row["interests"] or "[]")),
        confirmed=row["confirmed"],
        approved=ApprovalStatus(row["approved"]),
        assessor=row["assessor"],
        time_created=row["time_created"],
        time_modified=row["time_modified"],
    )


class PostgresRegistrationRepository:
    """
    Implements RegistrationRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    def insert(self, candidate: RegistrationCandidate, time_created: datetime) -> int | None:
        """
        Atomically insert a new PENDING, unconfirmed registration.

        Args:
            candidate: Form fields with a normalized email
            time_created: Creation instant, used by the expiry policy

        Returns:
            New record id, or None if the email is already registered
        """
        sql = """
            INSERT INTO registrations (
                tenant_id, first_name, last_name, email, country, gender,
                position, domain, comments, interests, confirmed, approved,
                time_created
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, FALSE, %s, %s)
            ON CONFLICT (email) DO NOTHING
            RETURNING id
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    candidate.tenant_id,
                    candidate.first_name,
                    candidate.last_name,
                    candidate.email,
                    candidate.country,
                    candidate.gender,
                    candidate.position,
                    candidate.domain,
                    candidate.comments,
                    json.dumps(list(candidate.interests)),
                    int(ApprovalStatus.PENDING),
                    time_created,
                ),
            )
            row = cursor.fetchone()
            conn.commit()
            return row[0] if row is not None else None

    def find(
        self, record_id: int | None = None, email: str | None = None
    ) -> RegistrationRecord | None:
        """
        Load a registration by id, email, or both.

        Raises:
            ValueError: If neither record_id nor email is given
        """
        if record_id is None and not email:
            raise ValueError("find() needs a record id or an email")

        clauses = []
        params: list = []
        if record_id is not None:
            clauses.append("id = %s")
            params.append(record_id)
        if email:
            clauses.append("email = %s")
            params.append(email)

        sql = f"SELECT {_COLUMNS} FROM registrations WHERE {' AND '.join(clauses)}"

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            row = cursor.fetchone()

        return _to_record(row) if row is not None else None

    def set_confirmed(self, record_id: int, time_modified: datetime) -> bool:
        sql = """
            UPDATE registrations
            SET confirmed = TRUE, time_modified = %s
            WHERE id = %s AND confirmed = FALSE
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (time_modified, record_id))
            conn.commit()
            return cursor.rowcount == 1

    def set_decision(
        self,
        record_id: int,
        status: ApprovalStatus,
        assessor: int,
        time_modified: datetime,
    ) -> bool:
        sql = """
            UPDATE registrations
            SET approved = %s, assessor = %s, time_modified = %s
            WHERE id = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (int(status), assessor, time_modified, record_id))
            conn.commit()
            return cursor.rowcount == 1

    def reopen(
        self, record_id: int, candidate: RegistrationCandidate, time_modified: datetime
    ) -> bool:
        """
        Apply an applicant's edits to a NOTIFIED record and queue it again.

        Email, tenant, confirmation and assessor are left untouched.
        """
        sql = """
            UPDATE registrations
            SET first_name = %s, last_name = %s, country = %s, gender = %s,
                position = %s, domain = %s, comments = %s, interests = %s,
                approved = %s, time_modified = %s
            WHERE id = %s AND approved = %s
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                sql,
                (
                    candidate.first_name,
                    candidate.last_name,
                    candidate.country,
                    candidate.gender,
                    candidate.position,
                    candidate.domain,
                    candidate.comments,
                    json.dumps(list(candidate.interests)),
                    int(ApprovalStatus.PENDING),
                    time_modified,
                    record_id,
                    int(ApprovalStatus.NOTIFIED),
                ),
            )
            conn.commit()
            return cursor.rowcount == 1

    def delete_expired(self, threshold: datetime) -> list[int]:
        """
        Delete unconfirmed registrations created before threshold.

        Returns:
            Ids of the deleted records, ascending
        """
        sql = """
            DELETE FROM registrations
            WHERE confirmed = FALSE AND time_created < %s
            RETURNING id
        """

        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(sql, (threshold,))
            ids = sorted(row[0] for row in cursor.fetchall())
            conn.commit()
            return ids

    def list_records(self, tenant_id: int | None = None) -> list[RegistrationRecord]:
        if tenant_id is None:
            sql = f"SELECT {_COLUMNS} FROM registrations ORDER BY time_created DESC, id DESC"
            params: tuple = ()
        else:
            sql = (
                f"SELECT {_COLUMNS} FROM registrations WHERE tenant_id = %s "
                "ORDER BY time_created DESC, id DESC"
            )
            params = (tenant_id,)

        with self._pool.connection() as conn, conn.cursor(row_factory=dict_row) as cursor:
            cursor.execute(sql, params)
            return [_to_record(row) for row in cursor.fetchall()]


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
