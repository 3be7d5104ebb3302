"""Bundled practice corpora."""
