"""Command line interface and status display."""
