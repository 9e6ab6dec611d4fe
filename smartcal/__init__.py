"""
smartcal - natural-language calendar assistant

Parses free-text commands into intents, reasons about conflicts and free time,
and keeps a local event store in sync with a remote calendar provider.
"""

__version__ = "0.1.0"
