"""Event, error and link handlers for the Live Captions relay."""
