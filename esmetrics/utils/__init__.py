"""Shared helpers for esmetrics."""
