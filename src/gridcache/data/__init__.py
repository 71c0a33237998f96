"""Caches, controllers and the remote source boundary for grid views."""
