"""FocusMate: LLM task breakdowns executed against per-step timers."""

__version__ = "0.1.0"
