"""Thread-safe map of tenants that currently have a live connection pool."""

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from infrastructure.database.pool import DatabasePool
    from tenancy.domain.tenant import Tenant

__all__ = ["LiveTenant", "LiveTenantMap"]


@dataclass(frozen=True)
class LiveTenant:
    """A provisioned tenant and the pool that owns its connections."""

    tenant: Tenant
    pool: DatabasePool


class LiveTenantMap:
    """Code to LiveTenant mapping shared by the provisioner, registry and router.

    Reads and writes of the mapping are guarded by one re-entrant lock.
    Work that must not interleave for the same tenant (provisioning,
    removal) additionally holds that tenant's own lock from lock_for(), so
    slow database I/O for one tenant never blocks lookups or other tenants.
    """

    def __init__(self) -> None:
        self._entries: dict[str, LiveTenant] = {}
        self._lock = threading.RLock()
        self._code_locks: dict[str, threading.RLock] = {}

    def lock_for(self, code: str) -> threading.RLock:
        """Return the lock serializing provisioning and removal of one code."""
        with self._lock:
            lock = self._code_locks.get(code)
            if lock is None:
                lock = threading.RLock()
                self._code_locks[code] = lock
            return lock

    def get(self, code: str) -> LiveTenant | None:
        with self._lock:
            return self._entries.get(code)

    def __contains__(self, code: object) -> bool:
        with self._lock:
            return code in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def codes(self) -> set[str]:
        """Snapshot of the live codes."""
        with self._lock:
            return set(self._entries)

    def install(self, entry: LiveTenant) -> None:
        """Add or replace the entry for ``entry.tenant.code``."""
        with self._lock:
            self._entries[entry.tenant.code] = entry

    def pop(self, code: str) -> LiveTenant | None:
        """Remove and return the entry for ``code``, if any."""
        with self._lock:
            return self._entries.pop(code, None)
