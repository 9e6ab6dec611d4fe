"""
Agent layer for smartcal

- IntentExtractor: free text -> typed Intent (ordered keyword rules)
- CalendarAgent: executes intents over an event list, returns AgentResponse
- BaseAgent / AgentResponse: shared agent interface
- Chooser: reply selection for the chat fallback

Usage:
    from smartcal.agents import CalendarAgent
    from smartcal.core import Config, InMemoryEventStore

    agent = CalendarAgent(InMemoryEventStore(), Config())
    response = agent.handle("create team meeting tomorrow at 14:00")
    print(response.message)
"""

from .base_agent import BaseAgent, AgentResponse
from .calendar_agent import CalendarAgent
from .chat import CHAT_PROMPTS, Chooser, RandomChooser, RoundRobinChooser
from .intent_extractor import IntentExtractor, parse_intent

__all__ = [
    'BaseAgent',
    'AgentResponse',
    'CalendarAgent',
    'CHAT_PROMPTS',
    'Chooser',
    'RandomChooser',
    'RoundRobinChooser',
    'IntentExtractor',
    'parse_intent',
]
