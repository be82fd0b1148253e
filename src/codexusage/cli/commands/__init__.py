"""CLI commands for codexusage."""
