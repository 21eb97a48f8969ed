"""Utility helpers for git-sequential-stage."""
