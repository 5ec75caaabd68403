"""HTTP presentation layer of the catalog context."""
