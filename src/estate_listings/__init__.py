"""Property listing search and administration service."""
