"""Client module - Registry access, local metadata and the sync engine."""
