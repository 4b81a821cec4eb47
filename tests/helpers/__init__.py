"""Shared helpers for Gitviz tests."""
