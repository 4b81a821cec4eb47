"""Gitviz: GitHub webhook receiver for repository activity visualization."""
