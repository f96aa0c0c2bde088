"""
Learned question/answer knowledge.

Entries live in the MongoDB `learned_qa` collection behind an in-process
hot cache. Two questions count as the same entry when their normalized
text (`question_key`) is equal, or when a text search for one returns
the other among its top hits AND their significant-word similarity
reaches DEDUP_SIMILARITY_THRESHOLD; lookups use the looser
LOOKUP_SIMILARITY_THRESHOLD.
"""
import re
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from typing import Optional

from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.collection import Collection
from pymongo.errors import OperationFailure, PyMongoError

from learnbot.cache import TTLCache
from learnbot.constants import (
    CACHE_KEY_PREFIX_LENGTH,
    DEDUP_SIMILARITY_THRESHOLD,
    DEFAULT_SCOPE,
    GENERAL_CONFIDENCE_DISCOUNT,
    KNOWLEDGE_CACHE_MAXSIZE,
    KNOWLEDGE_CACHE_TTL_SECONDS,
    LOOKUP_SIMILARITY_THRESHOLD,
    MIN_GENERAL_LOOKUP_CONFIDENCE,
    MIN_LOOKUP_CONFIDENCE,
    REGEX_FALLBACK_PREFIX_LENGTH,
    TEXT_SEARCH_CANDIDATES,
)
from learnbot.logger import logger
from learnbot.utils import normalize_text, question_similarity


@dataclass(frozen=True)
class KnowledgeEntry:
    question: str
    answer: str
    confidence: float
    use_count: int = 1
    created_at: Optional[datetime] = None
    last_updated: Optional[datetime] = None
    scope_tag: str = DEFAULT_SCOPE

    @classmethod
    def from_document(cls, doc: dict) -> "KnowledgeEntry":
        return cls(
            question=doc.get("question", ""),
            answer=doc.get("answer", ""),
            confidence=float(doc.get("confidence", 0.0)),
            use_count=int(doc.get("use_count", 0)),
            created_at=doc.get("created_at"),
            last_updated=doc.get("last_updated"),
            scope_tag=doc.get("scope_tag") or DEFAULT_SCOPE,
        )


class LookupStatus(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"


@dataclass(frozen=True)
class LookupResult:
    status: LookupStatus
    entry: Optional[KnowledgeEntry] = None
    # "cache", "database" or "database-general"
    source: Optional[str] = None
    scoped: bool = False
    error: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.status is LookupStatus.FOUND


NOT_FOUND = LookupResult(LookupStatus.NOT_FOUND)


class KnowledgeStore:

    def __init__(self, collection: Collection | None, cache: TTLCache | None = None):
        """
        Args:
            collection: The learned_qa collection, or None to run cache-only
            cache: Hot cache; a 24h cache is created when omitted
        """
        self.collection = collection
        self.cache = cache if cache is not None else TTLCache(maxsize=KNOWLEDGE_CACHE_MAXSIZE, ttl=KNOWLEDGE_CACHE_TTL_SECONDS)

    @property
    def is_durable(self) -> bool:
        return self.collection is not None

    def ensure_indexes(self) -> bool:
        if self.collection is None:
            logger.info("Cannot create knowledge indexes: MongoDB not connected")
            return False

        try:
            self.collection.create_index([("question", TEXT)])
            logger.debug("Knowledge text index created/verified")
        except PyMongoError as e:
            logger.warning("Could not create text index on learned_qa, regex matching will be used: %s", e)

        try:
            self.collection.create_index([("question_key", ASCENDING), ("scope_tag", ASCENDING)])
            self.collection.create_index([("scope_tag", ASCENDING)])
            self.collection.create_index([("confidence", DESCENDING)])
            self.collection.create_index([("use_count", DESCENDING)])
            self.collection.create_index([("last_updated", DESCENDING)])
            return True
        except PyMongoError as e:
            logger.error("Error creating knowledge indexes: %s", e)
            return False

    @staticmethod
    def cache_key(question: str, scope_tag: str | None) -> str:
        return f"{scope_tag or DEFAULT_SCOPE}:{normalize_text(question)[:CACHE_KEY_PREFIX_LENGTH]}"

    def find(self, question: str | None, scope_tag: str | None = None) -> LookupResult:
        if not question or not question.strip():
            return NOT_FOUND

        scope = scope_tag or DEFAULT_SCOPE
        key = self.cache_key(question, scope)
        cached = self.cache.get(key)
        if cached is not None and cached.confidence > MIN_LOOKUP_CONFIDENCE:
            logger.debug("Knowledge cache hit for scope=%s", scope)
            return LookupResult(LookupStatus.FOUND, cached, source="cache", scoped=scope != DEFAULT_SCOPE)

        if self.collection is None:
            return LookupResult(LookupStatus.UNAVAILABLE, error="knowledge store not configured")

        try:
            doc = self._search_one(question, scope, MIN_LOOKUP_CONFIDENCE, LOOKUP_SIMILARITY_THRESHOLD)
            if doc is not None:
                entry = KnowledgeEntry.from_document(doc)
                self.cache.set(key, entry)
                self._increment_use(doc)
                logger.debug("Found learned answer in scope=%s", scope)
                return LookupResult(LookupStatus.FOUND, entry, source="database", scoped=scope != DEFAULT_SCOPE)

            if scope != DEFAULT_SCOPE:
                logger.debug("No match in scope=%s, trying general knowledge", scope)
                doc = self._search_one(
                    question, DEFAULT_SCOPE, MIN_GENERAL_LOOKUP_CONFIDENCE, LOOKUP_SIMILARITY_THRESHOLD
                )
                if doc is not None:
                    self._increment_use(doc)
                    entry = KnowledgeEntry.from_document(doc)
                    entry = replace(entry, confidence=entry.confidence * GENERAL_CONFIDENCE_DISCOUNT)
                    return LookupResult(LookupStatus.FOUND, entry, source="database-general", scoped=False)
        except PyMongoError as e:
            logger.exception("Error finding learned answer: %s", e)
            return LookupResult(LookupStatus.UNAVAILABLE, error=str(e))

        return NOT_FOUND

    def upsert(self, question: str, answer: str, confidence: float, scope_tag: str | None = None) -> bool:
        """
        Insert a new entry, or raise an existing one when `confidence` is
        strictly higher. Returns True when the durable store was changed.
        """
        if not question or not question.strip() or not answer or not answer.strip():
            return False

        scope = scope_tag or DEFAULT_SCOPE
        key = self.cache_key(question, scope)
        now = datetime.utcnow()

        if self.collection is None:
            self._cache_if_higher(key, KnowledgeEntry(question, answer, confidence, 1, now, now, scope))
            return False

        try:
            existing = self._search_one(question, scope, None, DEDUP_SIMILARITY_THRESHOLD)

            if existing is None:
                doc = {
                    "question": question,
                    "question_key": normalize_text(question),
                    "answer": answer,
                    "scope_tag": scope,
                    "confidence": confidence,
                    "use_count": 1,
                    "created_at": now,
                    "last_updated": now,
                }
                self.collection.insert_one(doc)
                self.cache.set(key, KnowledgeEntry.from_document(doc))
                return True

            stored = KnowledgeEntry.from_document(existing)
            if confidence > stored.confidence:
                self.collection.update_one(
                    {"_id": existing["_id"]},
                    {
                        "$set": {"answer": answer, "confidence": confidence, "last_updated": now},
                        "$inc": {"use_count": 1},
                    },
                )
                self.cache.set(
                    key,
                    replace(stored, answer=answer, confidence=confidence,
                            use_count=stored.use_count + 1, last_updated=now),
                )
                return True

            # Existing entry stays authoritative
            self.cache.set(key, stored)
            return False
        except PyMongoError as e:
            logger.exception("Error storing learned Q&A: %s", e)
            self._cache_if_higher(key, KnowledgeEntry(question, answer, confidence, 1, now, now, scope))
            return False

    def count(self) -> int:
        if self.collection is None:
            return 0
        try:
            return self.collection.count_documents({})
        except PyMongoError as e:
            logger.exception("Error counting learned Q&A: %s", e)
            return 0

    def _cache_if_higher(self, key: str, entry: KnowledgeEntry) -> None:
        cached = self.cache.get(key)
        if cached is None or entry.confidence > cached.confidence:
            self.cache.set(key, entry)

    def _increment_use(self, doc: dict) -> None:
        self.collection.update_one({"_id": doc["_id"]}, {"$inc": {"use_count": 1}})

    def _search_one(
        self,
        question: str,
        scope: str,
        min_confidence: float | None,
        similarity_threshold: float,
    ) -> dict | None:
        """
        Exact match on the normalized question first, then the best-ranked
        text search candidate that is similar enough to `question`.
        """
        exact_query = {"question_key": normalize_text(question), "scope_tag": scope}
        if min_confidence is not None:
            exact_query["confidence"] = {"$gt": min_confidence}
        exact = self.collection.find_one(exact_query)
        if exact is not None:
            return exact

        for doc in self._search(question, scope, min_confidence):
            similarity = question_similarity(question, doc.get("question"))
            if similarity >= similarity_threshold:
                return doc
            logger.debug("Skipping text hit with similarity %.2f below %.2f", similarity, similarity_threshold)
        return None

    def _search(self, question: str, scope: str, min_confidence: float | None) -> list[dict]:
        query = {"scope_tag": scope}
        if min_confidence is not None:
            query["confidence"] = {"$gt": min_confidence}

        try:
            cursor = (
                self.collection.find(
                    {"$text": {"$search": question}, **query},
                    {"score": {"$meta": "textScore"}},
                )
                .sort([("score", {"$meta": "textScore"})])
                .limit(TEXT_SEARCH_CANDIDATES)
            )
            return list(cursor)
        except OperationFailure as e:
            # No text index: fall back to a case-insensitive prefix match
            logger.debug("Text search failed, falling back to regex: %s", e)
            prefix = re.escape(question[:REGEX_FALLBACK_PREFIX_LENGTH])
            query["question"] = {"$regex": prefix, "$options": "i"}
            return list(self.collection.find(query).limit(TEXT_SEARCH_CANDIDATES))
