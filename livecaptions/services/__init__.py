"""Service clients and session bookkeeping for the Live Captions relay."""
