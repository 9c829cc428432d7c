"""Command-line interface for erdedupe."""
