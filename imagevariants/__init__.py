"""Resized image variants with find-or-create caching."""
