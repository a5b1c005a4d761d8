"""Commands of the safespawn CLI."""
