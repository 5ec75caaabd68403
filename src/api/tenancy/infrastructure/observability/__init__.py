"""Domain-Oriented Observability for tenancy infrastructure."""

from tenancy.infrastructure.observability.provisioning_probe import (
    DefaultProvisioningProbe,
    DefaultRegistryProbe,
    ProvisioningProbe,
    RegistryProbe,
)
from tenancy.infrastructure.observability.repository_probe import (
    DefaultTenantRepositoryProbe,
    TenantRepositoryProbe,
)
from tenancy.infrastructure.observability.revalidation_probe import (
    DefaultRevalidationProbe,
    RevalidationProbe,
)

__all__ = [
    "DefaultProvisioningProbe",
    "DefaultRegistryProbe",
    "DefaultRevalidationProbe",
    "DefaultTenantRepositoryProbe",
    "ProvisioningProbe",
    "RegistryProbe",
    "RevalidationProbe",
    "TenantRepositoryProbe",
]
