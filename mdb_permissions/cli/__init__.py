"""Command-line interface for MDB_PERMISSIONS."""
