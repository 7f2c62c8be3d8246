"""Curriculum generation and ethical study-assistant API."""
