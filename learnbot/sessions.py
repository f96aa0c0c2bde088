"""
Per-(participant, channel) conversation state with a bounded history.
"""
import string
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from learnbot.cache import TTLCache
from learnbot.constants import (
    SESSION_CACHE_MAXSIZE,
    SESSION_HISTORY_LIMIT,
    SESSION_TTL_SECONDS,
)
from learnbot.topics import Topic
from learnbot.utils import contains_phrase, normalize_text


GREETING_PHRASES = (
    "hi", "hello", "hey", "greetings", "howdy",
    "good morning", "good afternoon", "good evening",
)
THANK_YOU_PHRASES = (
    "thanks", "thank you", "thx", "appreciate it", "cheers",
)
HELP_PHRASES = (
    "what can you do", "what do you do", "how can you help", "commands",
)
# Whole-message requests; "help" inside a longer question is left to the matchers
HELP_MESSAGES = ("help", "help me", "help please", "please help")


def is_greeting(text: str | None) -> bool:
    return contains_phrase(text, GREETING_PHRASES)


def is_thank_you(text: str | None) -> bool:
    return contains_phrase(text, THANK_YOU_PHRASES)


def is_help_request(text: str | None) -> bool:
    if not text:
        return False
    if normalize_text(text).strip(string.punctuation + " ") in HELP_MESSAGES:
        return True
    return contains_phrase(text, HELP_PHRASES)


class SessionState(str, Enum):
    INITIAL = "initial"
    AWAITING_TOPIC = "awaiting_topic"
    ANSWERING = "answering"
    FOLLOWUP = "followup"


@dataclass(frozen=True)
class Turn:
    query: str
    response: str
    timestamp: float


@dataclass
class Session:
    participant_id: str
    channel_id: str
    state: SessionState = SessionState.INITIAL
    history: list[Turn] = field(default_factory=list)
    last_topic: Optional[Topic] = None
    last_query: Optional[str] = None
    last_response: Optional[str] = None


class SessionStore:

    def __init__(
        self,
        cache: TTLCache | None = None,
        history_limit: int = SESSION_HISTORY_LIMIT,
        clock=time.time,
    ):
        self.cache = cache if cache is not None else TTLCache(maxsize=SESSION_CACHE_MAXSIZE, ttl=SESSION_TTL_SECONDS)
        self.history_limit = history_limit
        self._clock = clock

    @staticmethod
    def _key(participant_id: str, channel_id: str) -> str:
        return f"{participant_id}:{channel_id}"

    def get_or_create(self, participant_id: str, channel_id: str) -> Session:
        key = self._key(participant_id, channel_id)
        session = self.cache.get(key)
        if session is None:
            session = Session(participant_id=participant_id, channel_id=channel_id)
            self.cache.set(key, session)
        return session

    def update(self, participant_id: str, channel_id: str, **patch) -> Session:
        """
        Merge patch fields into the session and refresh its expiry.
        A patch carrying both `query` and `response` also appends a history turn.
        """
        session = self.get_or_create(participant_id, channel_id)

        query = patch.pop("query", None)
        response = patch.pop("response", None)

        for name, value in patch.items():
            if not hasattr(session, name) or name in ("participant_id", "channel_id", "history"):
                raise AttributeError(f"Session has no updatable field '{name}'")
            setattr(session, name, value)

        if query is not None:
            session.last_query = query
        if response is not None:
            session.last_response = response
        if query is not None and response is not None:
            session.history.append(Turn(query, response, self._clock()))
            del session.history[:-self.history_limit]

        self.cache.set(self._key(participant_id, channel_id), session)
        return session
