"""Utility modules for config files, bootstrap and display."""
