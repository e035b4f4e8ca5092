"""Constituant HTTP API."""
