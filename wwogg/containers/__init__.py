"""Containers that carry the converted audio."""
