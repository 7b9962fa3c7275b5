"""Utility helpers for the Live Captions relay."""
