"""Tests for admin commands."""

from unittest.mock import MagicMock

import pytest

from learnbot.admin_commands import handle_admin_command, is_admin


@pytest.fixture(autouse=True)
def admin_user(monkeypatch):
    monkeypatch.setenv("ADMIN_USER_ID", "UADMIN")


@pytest.fixture
def question_log():
    log = MagicMock()
    log.ping.return_value = True
    log.stats.return_value = {
        "total": 10,
        "matched": 5,
        "unmatched": 5,
        "match_rate": 0.5,
        "unique_users": 3,
    }
    log.frequent_questions.return_value = [{"_id": "How do I join?", "count": 3}]
    log.unanswered_questions.return_value = []
    return log


@pytest.fixture
def knowledge():
    store = MagicMock()
    store.count.return_value = 42
    return store


def test_is_admin(monkeypatch):
    assert is_admin("UADMIN")
    assert not is_admin("U1")
    monkeypatch.delenv("ADMIN_USER_ID")
    assert not is_admin(None)


def test_non_admin_gets_nothing(question_log, knowledge):
    assert handle_admin_command("!stats", "U1", question_log, knowledge) is None
    question_log.stats.assert_not_called()


def test_regular_text_is_not_a_command(question_log, knowledge):
    assert handle_admin_command("how do I join?", "UADMIN", question_log, knowledge) is None


def test_dbping(question_log, knowledge):
    assert "reachable" in handle_admin_command("!dbping", "UADMIN", question_log, knowledge)

    question_log.ping.return_value = False
    assert handle_admin_command("!DBPING", "UADMIN", question_log, knowledge) == "MongoDB is not connected."


def test_stats(question_log, knowledge):
    reply = handle_admin_command("!stats", "UADMIN", question_log, knowledge)

    assert "Match rate: 50%" in reply
    assert "Learned entries: 42" in reply


def test_faq_and_unanswered(question_log, knowledge):
    assert "1. How do I join? (3x)" in handle_admin_command("!faq", "UADMIN", question_log, knowledge)
    assert "nothing recorded yet" in handle_admin_command("!unanswered", "UADMIN", question_log, knowledge)


def test_learn(question_log, knowledge):
    reply = handle_admin_command("!learn", "UADMIN", question_log, knowledge, run_learning=lambda: 4)

    assert reply == "Learning pass complete. Learned 4 Q&A pairs."
    assert "not available" in handle_admin_command("!learn", "UADMIN", question_log, knowledge)
