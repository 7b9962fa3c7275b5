"""Message and state models for the Live Captions relay."""
