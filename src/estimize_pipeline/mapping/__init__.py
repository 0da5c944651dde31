"""Point-in-time ticker history loaded from map files."""
