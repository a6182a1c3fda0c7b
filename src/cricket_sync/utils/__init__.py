"""Shared helpers: value coercion and feed date formats."""
