"""Utility helpers: paths, CI context and the GitHub API."""
