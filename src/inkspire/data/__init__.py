"""Bundled demo adventures."""
