"""HTTP API and sqlite storage for spec graphs."""
