"""Service layer: category policy, catalog listing and archival."""
