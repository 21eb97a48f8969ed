"""Command-line interface for git-sequential-stage."""
