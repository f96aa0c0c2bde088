"""
Tunables shared across the resolution and learning pipeline.
"""
import os

MONGODB_SERVER_SELECTION_TIMEOUT_MS = 5000
MONGODB_DATABASE = os.getenv("MONGO_DB_NAME", "botlogs")
LEARNED_QA_COLLECTION = "learned_qa"
QUESTIONS_COLLECTION = "questions"

# Scope tag used when a question has no program context
DEFAULT_SCOPE = "General"

# Session store
SESSION_TTL_SECONDS = 3600
SESSION_HISTORY_LIMIT = 10
SESSION_CACHE_MAXSIZE = 10_000

# Knowledge store
KNOWLEDGE_CACHE_TTL_SECONDS = 24 * 60 * 60
KNOWLEDGE_CACHE_MAXSIZE = 5_000
CACHE_KEY_PREFIX_LENGTH = 30
MIN_LOOKUP_CONFIDENCE = 0.7
MIN_GENERAL_LOOKUP_CONFIDENCE = 0.8
GENERAL_CONFIDENCE_DISCOUNT = 0.9
TEXT_SEARCH_CANDIDATES = 5
REGEX_FALLBACK_PREFIX_LENGTH = 50
# Token-set similarity a text-search hit needs to count as the same question
DEDUP_SIMILARITY_THRESHOLD = 0.6
LOOKUP_SIMILARITY_THRESHOLD = 0.35

# Confidence levels assigned to learned entries
BOT_ANSWER_CONFIDENCE = 0.9
MANY_ANSWERS_CONFIDENCE = 0.8
SINGLE_ANSWER_CONFIDENCE = 0.6
BOT_HISTORY_CONFIDENCE = 0.95
RECORDED_EXCHANGE_CONFIDENCE = 0.9

# History mining
QUOTE_PREFIX_LENGTH = 10
CHANNEL_LIST_LIMIT = 1000
CHANNEL_HISTORY_LIMIT = 1000
BOT_HISTORY_LIMIT = 5000
WORKSPACE_DELAY_SECONDS = 2

# Channel scanning
CHANNEL_SCAN_HISTORY_LIMIT = 100
PROGRAM_CACHE_TTL_SECONDS = 24 * 60 * 60
CHANNEL_CONTENT_CACHE_TTL_SECONDS = 4 * 60 * 60

# Scheduling
LEARNING_INTERVAL_HOURS = int(os.getenv("LEARNING_INTERVAL_HOURS", "24"))
LEARNING_FIRST_RUN_DELAY_MINUTES = int(os.getenv("LEARNING_FIRST_RUN_DELAY_MINUTES", "5"))
CHANNEL_SCAN_INTERVAL_HOURS = int(os.getenv("CHANNEL_SCAN_INTERVAL_HOURS", "4"))

# Generative fallback
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_API_TIMEOUT = 30.0
OPENAI_TEMPERATURE = 0.3

MAX_TEXT_LENGTH = 1000
