"""Shared helpers for the CommitPilot CLI."""
