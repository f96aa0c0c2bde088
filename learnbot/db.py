"""
MongoDB connection handling.

The server treats MongoDB as optional: without MONGO_URL, or when the
server cannot be reached, connect() returns None and the knowledge store
and question log run in degraded mode. The batch learner passes strict=True
and gets the exception instead.
"""
import os

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import ConnectionFailure, ConfigurationError

from learnbot.logger import logger
from learnbot.constants import (
    MONGODB_DATABASE,
    MONGODB_SERVER_SELECTION_TIMEOUT_MS,
)


def connect(mongo_url: str | None = None, strict: bool = False) -> Database | None:
    mongo_url = mongo_url or os.environ.get("MONGO_URL")
    try:
        if not mongo_url:
            raise ValueError("MONGO_URL environment variable is not set")

        client = MongoClient(mongo_url, serverSelectionTimeoutMS=MONGODB_SERVER_SELECTION_TIMEOUT_MS)
        # Test the connection
        client.admin.command("ping")
        logger.info("MongoDB connection established successfully")
        return client[MONGODB_DATABASE]
    except (ConnectionFailure, ConfigurationError, ValueError) as e:
        if strict:
            logger.critical("Failed to connect to MongoDB: %s", e)
            raise
        logger.warning("MongoDB unavailable, continuing without durable storage: %s", e)
        return None
    except Exception as e:
        if strict:
            logger.critical("Unexpected error connecting to MongoDB: %s", e)
            raise
        logger.exception("Unexpected error connecting to MongoDB: %s", e)
        return None


def close(db: Database | None) -> None:
    if db is None:
        return
    try:
        db.client.close()
        logger.info("MongoDB connection closed")
    except Exception as e:
        logger.warning("Error closing MongoDB connection: %s", e)
