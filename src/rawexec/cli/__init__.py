"""Command-line surface for rawexec."""
