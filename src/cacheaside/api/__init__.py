"""HTTP API for cacheaside."""
