"""Tenancy bounded context.

Database-per-tenant routing: the tenant registry in the management
database, the live set of per-tenant connection pools, provisioning of
tenant databases and routing of each unit of work to its tenant's pool.
"""
