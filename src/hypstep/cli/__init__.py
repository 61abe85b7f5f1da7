"""Command-line interface for hypstep."""
