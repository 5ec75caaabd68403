"""HTTP presentation layer of the tenancy context."""
