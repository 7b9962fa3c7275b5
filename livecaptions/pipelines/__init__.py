"""Transcription pipelines, one per session mode."""
