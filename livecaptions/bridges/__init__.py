"""Client-facing bridges for the Live Captions relay."""
