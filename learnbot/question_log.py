"""
Log of every question the bot answered, stored in the `questions` collection.
Matched exchanges are replayed into the knowledge store by the history miner.
"""
from datetime import datetime

from pymongo import ASCENDING, DESCENDING
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from learnbot.constants import BOT_HISTORY_LIMIT, DEFAULT_SCOPE
from learnbot.logger import logger
from learnbot.utils import sanitize_slack_id


class QuestionLog:

    def __init__(self, collection: Collection | None):
        self.collection = collection

    @property
    def enabled(self) -> bool:
        return self.collection is not None

    def ensure_indexes(self) -> bool:
        if self.collection is None:
            return False
        try:
            self.collection.create_index([("timestamp", DESCENDING)])
            self.collection.create_index([("user_id", ASCENDING)])
            self.collection.create_index([("matched", ASCENDING)])
            return True
        except PyMongoError as e:
            logger.warning("Could not create indexes on questions collection: %s", e)
            return False

    def log_question(
        self,
        user_id: str,
        channel_id: str,
        question: str,
        response: str,
        matched: bool,
        program_name: str = DEFAULT_SCOPE,
        source: str | None = None,
        channel_name: str | None = None,
    ):
        """Insert one exchange. Returns the inserted id, or None when logging is off or failed.

        Raises:
            ValueError: If user_id or channel_id is not a valid Slack ID
        """
        if self.collection is None:
            return None
        user_id = sanitize_slack_id(user_id, "user_id")
        channel_id = sanitize_slack_id(channel_id, "channel_id")
        try:
            result = self.collection.insert_one({
                "user_id": user_id,
                "channel_id": channel_id,
                "channel_name": channel_name,
                "program_name": program_name or DEFAULT_SCOPE,
                "question": question,
                "response": response,
                "matched": matched,
                "source": source,
                "timestamp": datetime.utcnow(),
            })
            logger.debug("Question logged with ID: %s", result.inserted_id)
            return result.inserted_id
        except PyMongoError as e:
            logger.exception("Error logging question: %s", e)
            return None

    def matched_exchanges(self, limit: int = BOT_HISTORY_LIMIT) -> list[dict]:
        if self.collection is None:
            return []
        try:
            return list(self.collection.find({"matched": True}).limit(limit))
        except PyMongoError as e:
            logger.exception("Error reading matched questions: %s", e)
            return []

    def frequent_questions(self, limit: int = 10) -> list[dict]:
        return self._grouped({}, limit)

    def unanswered_questions(self, limit: int = 10) -> list[dict]:
        return self._grouped({"matched": False}, limit)

    def stats(self) -> dict:
        """Totals for the admin stats command."""
        if self.collection is None:
            return {}
        try:
            total = self.collection.count_documents({})
            matched = self.collection.count_documents({"matched": True})
            users = len(self.collection.distinct("user_id"))
            return {
                "total": total,
                "matched": matched,
                "unmatched": total - matched,
                "match_rate": (matched / total) if total else 0.0,
                "unique_users": users,
            }
        except PyMongoError as e:
            logger.exception("Error computing question stats: %s", e)
            return {}

    def ping(self) -> bool:
        if self.collection is None:
            return False
        try:
            self.collection.database.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error("MongoDB ping failed: %s", e)
            return False

    def _grouped(self, match: dict, limit: int) -> list[dict]:
        if self.collection is None:
            return []
        pipeline = [
            {"$match": match},
            {"$group": {
                "_id": "$question",
                "count": {"$sum": 1},
                "first_asked": {"$min": "$timestamp"},
                "last_asked": {"$max": "$timestamp"},
            }},
            {"$sort": {"count": -1}},
            {"$limit": limit},
        ]
        try:
            return list(self.collection.aggregate(pipeline))
        except PyMongoError as e:
            logger.exception("Error aggregating questions: %s", e)
            return []
