"""Shared test fixtures for learnbot."""

import copy
import re
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from bson import ObjectId
from pymongo.errors import OperationFailure

from learnbot.cache import TTLCache

_TOKEN = re.compile(r"[a-z0-9]+")


def _tokens(text):
    return {token for token in _TOKEN.findall((text or "").lower()) if len(token) > 2}


def _matches(doc, query):
    for key, condition in query.items():
        if key == "$text":
            continue
        value = doc.get(key)
        if isinstance(condition, dict):
            if "$gt" in condition and not (value is not None and value > condition["$gt"]):
                return False
            if "$regex" in condition:
                flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
                if value is None or not re.search(condition["$regex"], value, flags):
                    return False
        elif value != condition:
            return False
    return True


class FakeCursor:

    def __init__(self, docs):
        self._docs = docs

    def sort(self, keys):
        key, direction = keys[0]
        if isinstance(direction, dict):
            self._docs.sort(key=lambda doc: doc.get("score", 0), reverse=True)
        else:
            self._docs.sort(key=lambda doc: doc.get(key), reverse=direction < 0)
        return self

    def limit(self, count):
        self._docs = self._docs[:count]
        return self

    def __iter__(self):
        return iter(self._docs)


class FakeCollection:
    """
    Just enough of a pymongo Collection for the knowledge store and the
    question log. `$text` search scores documents by shared words longer
    than two characters.
    """

    def __init__(self, text_index=True):
        self.text_index = text_index
        self.docs = []
        self.indexes = []

    def create_index(self, keys, **kwargs):
        self.indexes.append(keys)
        return "_".join(str(key) for key, _ in keys)

    def find(self, query=None, projection=None):
        query = query or {}
        results = []
        if "$text" in query:
            if not self.text_index:
                raise OperationFailure("text index required for $text query", code=27)
            wanted = _tokens(query["$text"]["$search"])
            for doc in self.docs:
                score = len(wanted & _tokens(doc.get("question")))
                if score > 0 and _matches(doc, query):
                    hit = copy.deepcopy(doc)
                    hit["score"] = float(score)
                    results.append(hit)
        else:
            results = [copy.deepcopy(doc) for doc in self.docs if _matches(doc, query)]
        return FakeCursor(results)

    def find_one(self, query=None):
        return next(iter(self.find(query)), None)

    def insert_one(self, doc):
        doc.setdefault("_id", ObjectId())
        self.docs.append(copy.deepcopy(doc))
        return SimpleNamespace(inserted_id=doc["_id"])

    def update_one(self, query, update):
        for doc in self.docs:
            if _matches(doc, query):
                doc.update(update.get("$set", {}))
                for key, amount in update.get("$inc", {}).items():
                    doc[key] = doc.get(key, 0) + amount
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    def count_documents(self, query):
        return sum(1 for doc in self.docs if _matches(doc, query))

    def distinct(self, key):
        return sorted({doc.get(key) for doc in self.docs if doc.get(key) is not None})


class FakeClock:

    def __init__(self, start=1000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def collection():
    return FakeCollection()


@pytest.fixture
def collection_without_text_index():
    return FakeCollection(text_index=False)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fresh_cache():
    return TTLCache(maxsize=100, ttl=3600)


@pytest.fixture
def mock_slack_client():
    """WebClient stand-in with empty default responses."""
    client = MagicMock()
    client.auth_test.return_value = {"user_id": "UBOT", "bot_id": "BBOT", "team_id": "T1"}
    client.conversations_list.return_value = {"channels": []}
    client.conversations_history.return_value = {"messages": []}
    client.conversations_info.return_value = {"channel": None}
    client.users_conversations.return_value = {"channels": []}
    return client


@pytest.fixture
def sample_thread():
    """Question, this bot's answer, then an unrelated message."""
    return [
        {"ts": "1700000000.000100", "user": "U1", "text": "how do I access recordings?"},
        {"ts": "1700000060.000200", "bot_id": "BBOT", "text": "Recordings are in the shared drive folder."},
        {"ts": "1700000120.000300", "user": "U2", "text": "lunch plans later"},
    ]
