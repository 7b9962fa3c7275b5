"""Live Captions relay: streams capture audio to OpenAI and captions back."""

__version__ = "1.0.0"
