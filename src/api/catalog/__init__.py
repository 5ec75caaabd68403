"""Catalog bounded context.

Products are tenant data: each tenant's products live in that tenant's
own database, and every catalog operation runs inside a tenant scope.
The ``migrations`` directory is the application migration scope applied
to every tenant database.
"""
