"""Command line interface for safespawn."""
