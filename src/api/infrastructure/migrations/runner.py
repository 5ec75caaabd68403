"""Alembic-driven application of migration scopes to one database.

A migration scope is an alembic script directory plus the name of the
history table that records which of its revisions a database carries.
Several scopes can live in the same database because each keeps its own
history table.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from alembic.config import Config
from alembic.runtime.environment import EnvironmentContext
from alembic.script import ScriptDirectory
from alembic.util import CommandError
from sqlalchemy import Column, MetaData, PrimaryKeyConstraint, String, Table, inspect

from infrastructure.migrations.observability import DefaultMigrationProbe, MigrationProbe
from tenancy.ports.exceptions import MigrationError

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

    from infrastructure.database.pool import DatabasePool

__all__ = [
    "AppliedMigrations",
    "MigrationRunner",
    "MigrationScope",
]

# alembic's ``op`` and ``context`` proxies are module globals, so only one
# scope may be applied at a time per process.
_ALEMBIC_LOCK = threading.Lock()


@dataclass(frozen=True)
class MigrationScope:
    """A named set of revisions tracked in its own history table.

    Attributes:
        name: Scope name used in logs (management, commons, app)
        location: alembic script location, a path or ``package:relative/path``
        history_table: Table recording the applied revisions of this scope
    """

    name: str
    location: str
    history_table: str


@dataclass(frozen=True)
class AppliedMigrations:
    """Outcome of applying one scope to one database."""

    scope: str
    database: str
    applied: tuple[str, ...] = ()
    heads: tuple[str, ...] = ()
    baselined: bool = False
    repaired: bool = False
    removed_revisions: tuple[str, ...] = field(default=())


def history_table(name: str) -> Table:
    """Build the history table in the layout alembic expects."""
    return Table(
        name,
        MetaData(),
        Column("version_num", String(32), nullable=False),
        PrimaryKeyConstraint("version_num", name=f"{name}_pkc"),
    )


class MigrationRunner:
    """Applies migration scopes with a single repair-and-retry on failure.

    Revisions are applied in dependency order up to every head of the scope.
    Revision contents are never compared against what was previously
    applied, so a database baselined in another environment is accepted as
    long as its history table names known revisions.

    If an apply fails, the history table is repaired once (rows naming
    revisions that no longer exist in the script directory are deleted) and
    the apply is retried once. A second failure raises MigrationError.
    """

    def __init__(self, probe: MigrationProbe | None = None):
        self._probe = probe or DefaultMigrationProbe()

    def apply(self, scope: MigrationScope, pool: DatabasePool) -> AppliedMigrations:
        """Bring ``pool``'s database up to the heads of ``scope``.

        Args:
            scope: The migration scope to apply
            pool: Pool of the target database

        Returns:
            AppliedMigrations describing what was applied

        Raises:
            MigrationError: If the apply failed on both attempts
        """
        database = pool.database
        try:
            script = self._script_directory(scope)
        except CommandError as e:
            self._probe.migration_failed(scope.name, database, e)
            raise MigrationError(
                f"Cannot load migration scope '{scope.name}' from "
                f"'{scope.location}': {e}",
                scope=scope.name,
                database=database,
            ) from e

        removed: tuple[str, ...] = ()
        repaired = False
        baselined = False
        try:
            baselined = self._baseline(scope, pool)
            applied, heads = self._upgrade(scope, script, pool)
        except Exception as first_error:
            self._probe.attempt_failed(scope.name, database, first_error)
            try:
                removed = self._repair(scope, script, pool)
                repaired = True
                baselined = self._baseline(scope, pool) or baselined
                applied, heads = self._upgrade(scope, script, pool)
            except Exception as e:
                self._probe.migration_failed(scope.name, database, e)
                raise MigrationError(
                    f"Migration scope '{scope.name}' failed for database "
                    f"'{database}' after repair: {e}",
                    scope=scope.name,
                    database=database,
                ) from e

        self._probe.migrations_applied(scope.name, database, applied, heads)
        return AppliedMigrations(
            scope=scope.name,
            database=database,
            applied=applied,
            heads=heads,
            baselined=baselined,
            repaired=repaired,
            removed_revisions=removed,
        )

    def _script_directory(self, scope: MigrationScope) -> ScriptDirectory:
        return ScriptDirectory.from_config(self._config(scope))

    @staticmethod
    def _config(scope: MigrationScope) -> Config:
        config = Config()
        config.set_main_option("script_location", scope.location)
        return config

    def _baseline(self, scope: MigrationScope, pool: DatabasePool) -> bool:
        """Create the scope's history table, empty, if the database lacks it."""
        with pool.connection() as conn:
            if inspect(conn).has_table(scope.history_table):
                return False
            history_table(scope.history_table).create(conn, checkfirst=True)
            conn.commit()

        self._probe.history_baselined(scope.name, pool.database, scope.history_table)
        return True

    def _upgrade(
        self,
        scope: MigrationScope,
        script: ScriptDirectory,
        pool: DatabasePool,
    ) -> tuple[tuple[str, ...], tuple[str, ...]]:
        """Run every pending revision of the scope.

        Returns:
            The applied revision ids in order, and the heads afterwards
        """
        applied: list[str] = []

        def upgrade(rev, context):
            # Same private call alembic.command.upgrade makes; pyproject pins alembic<2
            steps = script._upgrade_revs("heads", rev)
            applied.extend(step.revision.revision for step in steps)
            return steps

        with _ALEMBIC_LOCK, pool.connection() as conn:
            with EnvironmentContext(
                self._config(scope),
                script,
                fn=upgrade,
                destination_rev="heads",
            ) as env:
                env.configure(
                    connection=conn,
                    version_table=scope.history_table,
                    target_metadata=None,
                )
                with env.begin_transaction():
                    env.run_migrations()
                heads = tuple(sorted(env.get_context().get_current_heads()))
            if conn.in_transaction():
                conn.commit()

        return tuple(applied), heads

    def _repair(
        self,
        scope: MigrationScope,
        script: ScriptDirectory,
        pool: DatabasePool,
    ) -> tuple[str, ...]:
        """Delete history rows naming revisions missing from the script directory."""
        known = {revision.revision for revision in script.walk_revisions()}
        table = history_table(scope.history_table)

        with pool.connection() as conn:
            if not inspect(conn).has_table(scope.history_table):
                return ()
            recorded = conn.execute(table.select()).scalars().all()
            unknown = tuple(rev for rev in recorded if rev not in known)
            if unknown:
                conn.execute(table.delete().where(table.c.version_num.in_(unknown)))
            conn.commit()

        self._probe.history_repaired(scope.name, pool.database, unknown)
        return unknown

    def current_heads(self, scope: MigrationScope, pool: DatabasePool) -> tuple[str, ...]:
        """Revisions of ``scope`` currently recorded in the database."""
        with pool.connection() as conn:
            return _recorded_revisions(conn, scope.history_table)


def _recorded_revisions(conn: Connection, table_name: str) -> tuple[str, ...]:
    if not inspect(conn).has_table(table_name):
        return ()
    table = history_table(table_name)
    return tuple(sorted(conn.execute(table.select()).scalars().all()))
