"""
Generative fallback answers through the OpenAI chat completions API.
"""
import os
from typing import Optional, Sequence

from openai import OpenAI
from openai import APITimeoutError

from learnbot.constants import OPENAI_API_TIMEOUT, OPENAI_MODEL, OPENAI_TEMPERATURE
from learnbot.logger import logger
from learnbot.topics import Topic, get_topic_urls

SYSTEM_PROMPT = (
    "You are a friendly learning assistant for students in an online course program. "
    "Answer questions about live sessions, Zoom, recordings, the learning portal, "
    "assessments and deadlines. Keep answers short and practical. "
    "If you don't know something specific to the program, say so and suggest "
    "contacting the support team instead of guessing."
)


class FallbackGenerator:

    def __init__(self, client: OpenAI | None = None, model: str = OPENAI_MODEL, timeout: float = OPENAI_API_TIMEOUT):
        self.client = client
        self.model = model
        self.timeout = timeout

    @classmethod
    def from_env(cls) -> "FallbackGenerator":
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            logger.info("OPENAI_API_KEY not set, generative fallback disabled")
            return cls(None)
        return cls(OpenAI(api_key=api_key))

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def build_messages(self, query: str, history: Sequence = (), topic: Topic | None = None) -> list[dict]:
        system = SYSTEM_PROMPT
        if topic is not None:
            system += f"\nThe question is most likely about: {topic.value}."
            links = get_topic_urls(topic)
            if links:
                system += "\nPoint the student to these links where they help: " + ", ".join(links.values()) + "."
        messages = [{"role": "system", "content": system}]
        for turn in history:
            messages.append({"role": "user", "content": turn.query})
            messages.append({"role": "assistant", "content": turn.response})
        messages.append({"role": "user", "content": query})
        return messages

    def generate(self, query: str, history: Sequence = (), topic: Topic | None = None) -> Optional[str]:
        """
        Best-effort answer, or None when the fallback is disabled or the call fails.
        """
        if self.client is None or not query:
            return None

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(query, history, topic),
                temperature=OPENAI_TEMPERATURE,
                timeout=self.timeout,
            )
        except APITimeoutError:
            logger.error("OpenAI API timeout while generating fallback answer (timeout=%ss)", self.timeout)
            return None
        except Exception:
            logger.exception("OpenAI error while generating fallback answer")
            return None

        content = (response.choices[0].message.content or "").strip()
        if not content:
            logger.error("OpenAI returned empty content for fallback answer")
            return None
        return content
