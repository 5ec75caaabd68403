"""Infrastructure of the tenancy context: persistence, pools and routing."""
