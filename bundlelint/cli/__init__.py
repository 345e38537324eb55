"""Command line interface for bundlelint."""
