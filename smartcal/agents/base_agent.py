"""
Base Agent for smartcal
Defines the abstract base class and the response structure shared by agents.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging
import json

from ..core.models import SideEffect


@dataclass
class AgentResponse:
    """
    Standard response structure from any agent.

    Attributes:
        success: Whether the request was carried out (False for guidance replies)
        message: Human-readable description of the result; never empty
        data: Optional structured data (matched events, slots, statistics)
        suggestions: Optional list of follow-up commands the user might want
        side_effect: Store mutation the caller should apply, if any
    """
    success: bool
    message: str
    data: Optional[Dict[str, Any]] = None
    suggestions: Optional[List[str]] = None
    side_effect: Optional[SideEffect] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert response to dictionary for serialization."""
        return {
            "success": self.success,
            "message": self.message,
            "data": self.data,
            "suggestions": self.suggestions,
            "side_effect": self.side_effect.to_dict() if self.side_effect else None,
        }

    @classmethod
    def error(cls, message: str, data: Optional[Dict[str, Any]] = None,
              suggestions: Optional[List[str]] = None) -> 'AgentResponse':
        """Factory method for guidance/error responses."""
        return cls(success=False, message=message, data=data, suggestions=suggestions)

    @classmethod
    def ok(cls, message: str, data: Optional[Dict[str, Any]] = None,
           suggestions: Optional[List[str]] = None,
           side_effect: Optional[SideEffect] = None) -> 'AgentResponse':
        """Factory method for creating success responses."""
        return cls(success=True, message=message, data=data,
                   suggestions=suggestions, side_effect=side_effect)


class BaseAgent(ABC):
    """
    Abstract base class for smartcal agents.

    Provides common functionality for:
    - Event store access
    - Configuration management
    - Logging

    Subclasses must implement:
    - process(): Handle a free-text request
    - get_supported_intents(): Return list of intents this agent handles
    """

    def __init__(self, store, config, name: str):
        """
        Initialize the base agent.

        Args:
            store: EventStore instance for data access
            config: Config instance for settings/preferences
            name: Unique identifier for this agent (e.g., "calendar")
        """
        self.store = store
        self.config = config
        self.name = name
        self.logger = logging.getLogger(f"agent.{name}")

    @abstractmethod
    def process(self, text: str, events: Optional[List[Any]] = None) -> AgentResponse:
        """
        Interpret a free-text request and produce a response.

        Args:
            text: User command
            events: Events to reason over; loaded from the store when None

        Returns:
            AgentResponse with message and optional side effect
        """
        pass

    @abstractmethod
    def get_supported_intents(self) -> List[str]:
        """Return list of intent types this agent can handle."""
        pass

    def can_handle(self, intent: str) -> bool:
        return intent in self.get_supported_intents()

    def log_action(self, action: str, details: Optional[Dict[str, Any]] = None) -> None:
        """
        Log an action taken by this agent.

        Args:
            action: Description of the action taken
            details: Optional additional details as key-value pairs
        """
        log_entry = {
            "agent": self.name,
            "action": action,
            "timestamp": datetime.now(timezone.utc).isoformat()
        }
        if details:
            log_entry["details"] = details

        self.logger.info(json.dumps(log_entry, default=str))

    def get_config_value(self, key: str, section: str = "preferences",
                         default: Any = None) -> Any:
        """Get a configuration value with fallback to default."""
        if self.config is None:
            return default
        return self.config.get(key, section=section, default=default)
