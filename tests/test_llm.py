"""Tests for the generative fallback."""

from unittest.mock import MagicMock

import httpx
from openai import APITimeoutError

from learnbot.llm import SYSTEM_PROMPT, FallbackGenerator
from learnbot.sessions import Turn
from learnbot.topics import COURSE_INFO, Topic


def _client(content):
    client = MagicMock()
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    client.chat.completions.create.return_value = response
    return client


def test_generate_returns_stripped_content():
    generator = FallbackGenerator(_client("  Refunds go through support.  "), model="gpt-test")

    assert generator.generate("How do refunds work?") == "Refunds go through support."
    kwargs = generator.client.chat.completions.create.call_args.kwargs
    assert kwargs["model"] == "gpt-test"
    assert kwargs["timeout"] == generator.timeout


def test_build_messages_includes_history_and_topic():
    generator = FallbackGenerator(None)
    history = [Turn("hi", "Hi there!", 1.0)]

    messages = generator.build_messages("How do I join?", history, Topic.ZOOM)

    assert messages[0]["role"] == "system"
    assert messages[0]["content"].startswith(SYSTEM_PROMPT)
    assert "zoom" in messages[0]["content"]
    assert [m["role"] for m in messages[1:]] == ["user", "assistant", "user"]
    assert messages[-1]["content"] == "How do I join?"


def test_build_messages_points_to_topic_links():
    generator = FallbackGenerator(None)

    portal = generator.build_messages("I cannot log in to the portal", topic=Topic.PORTAL)[0]["content"]
    learning = generator.build_messages("Where are the modules?", topic=Topic.LEARNING)[0]["content"]
    zoom = generator.build_messages("How do I join?", topic=Topic.ZOOM)[0]["content"]

    assert COURSE_INFO["portal_url"] in portal
    assert COURSE_INFO["portal_access_video"] in portal
    assert COURSE_INFO["learning_portal_video"] in learning
    assert "http" not in zoom


def test_disabled_without_client():
    generator = FallbackGenerator(None)

    assert not generator.enabled
    assert generator.generate("anything") is None


def test_from_env_without_key(monkeypatch):
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)

    assert not FallbackGenerator.from_env().enabled


def test_timeout_returns_none():
    client = MagicMock()
    client.chat.completions.create.side_effect = APITimeoutError(
        request=httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    )

    assert FallbackGenerator(client).generate("How do refunds work?") is None


def test_api_error_returns_none():
    client = MagicMock()
    client.chat.completions.create.side_effect = RuntimeError("rate limited")

    assert FallbackGenerator(client).generate("How do refunds work?") is None


def test_empty_content_returns_none():
    assert FallbackGenerator(_client("")).generate("How do refunds work?") is None
    assert FallbackGenerator(_client(None)).generate("How do refunds work?") is None
