"""SQLAlchemy implementation of ITenantRepository.

Works on a caller-provided Session bound to the management database. The
repository flushes but never commits: transaction boundaries belong to the
application service.
"""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from tenancy.domain.tenant import Tenant
from tenancy.infrastructure.models import TenantModel
from tenancy.infrastructure.observability import (
    DefaultTenantRepositoryProbe,
    TenantRepositoryProbe,
)
from tenancy.ports.exceptions import TenantAlreadyExistsError
from tenancy.ports.repositories import ITenantRepository


class TenantRepository(ITenantRepository):
    """Repository managing the tenant table of the management database."""

    def __init__(
        self,
        session: Session,
        probe: TenantRepositoryProbe | None = None,
    ) -> None:
        """Initialize repository with a management database session.

        Args:
            session: Session bound to the management database
            probe: Optional domain probe for observability
        """
        self._session = session
        self._probe = probe or DefaultTenantRepositoryProbe()

    def save(self, tenant: Tenant) -> Tenant:
        """Insert a new tenant and flush to obtain its id.

        Raises:
            TenantAlreadyExistsError: If the code or name is already taken
        """
        if (
            self.get_by_code(tenant.code) is not None
            or self.get_by_name(tenant.name) is not None
        ):
            self._probe.duplicate_tenant(tenant.code, tenant.name)
            raise TenantAlreadyExistsError(
                f"Tenant with code {tenant.code} or name '{tenant.name}' already exists"
            )

        model = TenantModel(code=tenant.code, name=tenant.name, active=tenant.active)
        self._session.add(model)
        try:
            # Flush to catch unique violations from concurrent inserts
            self._session.flush()
        except IntegrityError as e:
            self._probe.duplicate_tenant(tenant.code, tenant.name)
            raise TenantAlreadyExistsError(
                f"Tenant with code {tenant.code} or name '{tenant.name}' already exists"
            ) from e

        self._probe.tenant_saved(tenant.code)
        return self._to_domain(model)

    def get_by_code(self, code: str) -> Tenant | None:
        model = self._session.execute(
            select(TenantModel).where(TenantModel.code == code)
        ).scalar_one_or_none()
        return None if model is None else self._to_domain(model)

    def get_by_name(self, name: str) -> Tenant | None:
        model = self._session.execute(
            select(TenantModel).where(TenantModel.name == name)
        ).scalar_one_or_none()
        return None if model is None else self._to_domain(model)

    def list_all(self) -> list[Tenant]:
        models = self._session.execute(
            select(TenantModel).order_by(TenantModel.code)
        ).scalars()
        tenants = [self._to_domain(model) for model in models]
        self._probe.tenants_listed(len(tenants), active=None)
        return tenants

    def list_by_active(self, active: bool) -> list[Tenant]:
        models = self._session.execute(
            select(TenantModel)
            .where(TenantModel.active == active)
            .order_by(TenantModel.code)
        ).scalars()
        tenants = [self._to_domain(model) for model in models]
        self._probe.tenants_listed(len(tenants), active=active)
        return tenants

    def set_active(self, code: str, active: bool) -> Tenant | None:
        """Update the active flag; returns None when the code is unknown."""
        model = self._session.execute(
            select(TenantModel).where(TenantModel.code == code)
        ).scalar_one_or_none()
        if model is None:
            return None

        model.active = active
        self._session.flush()
        self._probe.tenant_activation_changed(code, active)
        return self._to_domain(model)

    def delete(self, code: str) -> bool:
        """Delete a tenant row; returns False when the code is unknown."""
        result = self._session.execute(delete(TenantModel).where(TenantModel.code == code))
        self._session.flush()
        if result.rowcount == 0:
            return False
        self._probe.tenant_deleted(code)
        return True

    @staticmethod
    def _to_domain(model: TenantModel) -> Tenant:
        return Tenant(
            id=model.id,
            code=model.code,
            name=model.name,
            active=model.active,
        )
