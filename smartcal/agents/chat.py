"""
Fallback chat replies.

When no calendar intent matches, the agent answers with one of a fixed set of
prompts. Which one is picked is decided by an injected Chooser so behaviour
stays reproducible in tests.
"""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
import random
import threading

CHAT_PROMPTS = (
    "I understand. Let me help you manage your calendar.",
    "Is there anything I can help you with?",
    "Tell me what you would like to schedule.",
    "I can view, create, delete or analyze your calendar events.",
)


class Chooser(ABC):
    """Strategy selecting one reply out of a sequence."""

    @abstractmethod
    def choose(self, options: Sequence[str]) -> str:
        pass


class RoundRobinChooser(Chooser):
    """Cycles through the options in order."""

    def __init__(self, start: int = 0):
        self._index = start
        self._lock = threading.Lock()

    def choose(self, options: Sequence[str]) -> str:
        if not options:
            raise ValueError("No options to choose from")
        with self._lock:
            choice = options[self._index % len(options)]
            self._index += 1
        return choice


class RandomChooser(Chooser):
    """Picks uniformly from the options using the given random source."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def choose(self, options: Sequence[str]) -> str:
        if not options:
            raise ValueError("No options to choose from")
        return self.rng.choice(list(options))
