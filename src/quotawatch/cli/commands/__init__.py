"""CLI commands for quotawatch."""
