"""smartcal HTTP API (FastAPI)."""
