"""Command-line tools for the taskspace service."""
