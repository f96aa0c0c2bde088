"""Tests for text helpers and configuration."""

import pytest

from learnbot.config import (
    BATCH_REQUIRED_VARS,
    get_bot_tokens,
    is_learning_enabled,
    validate_environment_variables,
)
from learnbot.utils import (
    contains_phrase,
    question_similarity,
    sanitize_slack_id,
    significant_words,
    strip_leading_mention,
)


class TestText:

    def test_contains_phrase_respects_word_boundaries(self):
        assert contains_phrase("Hi there", ("hi",))
        assert not contains_phrase("which one", ("hi",))
        assert contains_phrase("thank you!", ("thank you",))
        assert not contains_phrase(None, ("hi",))

    def test_strip_leading_mention(self):
        assert strip_leading_mention("<@U123ABC>   how do I join?") == "how do I join?"
        assert strip_leading_mention("no mention") == "no mention"
        assert strip_leading_mention(None) == ""

    def test_significant_words(self):
        assert significant_words("How do I join the Zoom?") == {"how", "join", "the", "zoom"}

    def test_question_similarity(self):
        assert question_similarity("How do I join Zoom?", "how do i join zoom") == 1.0
        assert question_similarity("How do I join Zoom?", "Where are recordings?") == 0.0
        assert question_similarity("how do I access recordings", "how do I access the recordings?") == 0.75

    def test_short_word_questions_compare_exactly(self):
        assert question_similarity("is it ok", "Is  it OK") == 1.0
        assert question_similarity("is it ok", "is it on") == 0.0
        assert question_similarity("", "") == 0.0


class TestSanitizeSlackId:

    def test_valid_id(self):
        assert sanitize_slack_id("  U123ABC ") == "U123ABC"

    @pytest.mark.parametrize("value", ["$where", "U1{}", "a.b", ""])
    def test_invalid_ids(self, value):
        with pytest.raises(ValueError):
            sanitize_slack_id(value)

    def test_none(self):
        assert sanitize_slack_id(None, allow_none=True) is None
        with pytest.raises(ValueError):
            sanitize_slack_id(None)


class TestConfig:

    def test_missing_required_vars_exit(self, monkeypatch):
        monkeypatch.delenv("MONGO_URL", raising=False)

        with pytest.raises(SystemExit) as exc:
            validate_environment_variables(BATCH_REQUIRED_VARS)
        assert exc.value.code == 1

    def test_required_vars_present(self, monkeypatch):
        monkeypatch.setenv("MONGO_URL", "mongodb://localhost:27017")

        validate_environment_variables(BATCH_REQUIRED_VARS)

    def test_bot_tokens(self, monkeypatch):
        monkeypatch.setenv("SLACK_BOT_TOKENS", "xoxb-1, xoxb-2,")
        assert get_bot_tokens() == ["xoxb-1", "xoxb-2"]

        monkeypatch.delenv("SLACK_BOT_TOKENS")
        monkeypatch.setenv("SLACK_BOT_TOKEN", "xoxb-single")
        assert get_bot_tokens() == ["xoxb-single"]

    @pytest.mark.parametrize("value, expected", [("true", True), ("FALSE", False), ("0", False), ("yes", True)])
    def test_learning_enabled(self, monkeypatch, value, expected):
        monkeypatch.setenv("LEARNING_ENABLED", value)
        assert is_learning_enabled() is expected
