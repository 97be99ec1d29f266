"""Shared helpers: error message enhancement and database setup scripts."""
