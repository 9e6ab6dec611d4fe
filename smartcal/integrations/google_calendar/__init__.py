"""
Google Calendar implementation of the remote calendar provider
"""

from .provider import GoogleCalendarProvider, SCOPES

__all__ = ['GoogleCalendarProvider', 'SCOPES']
