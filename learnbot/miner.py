"""
Learning from conversation history.

A mining pass reads recent channel history, rebuilds question/answer
groups, scores them and upserts them into the knowledge store. Matched
exchanges from the question log are replayed as well. Re-mining the same
history adds nothing new because upserts never lower confidence.
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from learnbot.channels import extract_program_name
from learnbot.constants import (
    BOT_ANSWER_CONFIDENCE,
    BOT_HISTORY_CONFIDENCE,
    BOT_HISTORY_LIMIT,
    DEFAULT_SCOPE,
    MANY_ANSWERS_CONFIDENCE,
    QUOTE_PREFIX_LENGTH,
    SINGLE_ANSWER_CONFIDENCE,
)
from learnbot.knowledge import KnowledgeStore
from learnbot.logger import logger
from learnbot.messages import ChatMessage
from learnbot.question_log import QuestionLog

QUESTION_WORDS = frozenset(
    ("what", "how", "where", "when", "why", "who", "can", "could", "do", "does", "is", "are")
)
QUESTION_PREFIXES = ("how can we", "how do i", "how to")
QUESTION_PHRASES = (
    "i need help", "help me", "looking for", "trying to figure out",
    "can anyone", "does anyone", "is there", "tell me", "explain",
    "add labels", "create a", "find the", "access", "tutorial",
)


def is_likely_question(text: str | None) -> bool:
    if not text or not text.strip():
        return False
    if "?" in text:
        return True

    lowered = text.strip().lower()
    if lowered.split()[0] in QUESTION_WORDS:
        return True
    if lowered.startswith(QUESTION_PREFIXES):
        return True
    return any(phrase in lowered for phrase in QUESTION_PHRASES)


@dataclass
class QAGroup:
    question: ChatMessage
    answers: list[ChatMessage] = field(default_factory=list)
    bot_answer: Optional[ChatMessage] = None
    bot_confidence: Optional[float] = None

    @property
    def answer_text(self) -> Optional[str]:
        if self.bot_answer is not None:
            return self.bot_answer.text
        return self.answers[0].text if self.answers else None

    @property
    def confidence(self) -> float:
        if self.bot_confidence is not None:
            return self.bot_confidence
        return MANY_ANSWERS_CONFIDENCE if len(self.answers) > 2 else SINGLE_ANSWER_CONFIDENCE


def _is_candidate_answer(message: ChatMessage, anchor: ChatMessage, quote: str) -> bool:
    if message.is_bot_authored:
        return True
    if quote and quote in message.text.lower():
        return True
    return message.thread_id is not None and message.thread_id == anchor.timestamp


def mine_channel(messages: Iterable, own_bot_ids: Iterable[str] = (), channel_id: str | None = None) -> list[QAGroup]:
    """
    Rebuild question/answer groups from raw channel history.

    Args:
        messages: Slack message dicts or ChatMessage objects, any order
        own_bot_ids: Identities of this bot; their answers become the designated answer
        channel_id: Channel the messages came from
    """
    own_ids = {bot_id for bot_id in own_bot_ids if bot_id}
    normalized = [
        message if isinstance(message, ChatMessage) else ChatMessage.from_slack(message, channel_id)
        for message in messages or ()
        if message
    ]
    normalized.sort(key=lambda message: message.ts)

    groups: list[QAGroup] = []
    current: Optional[QAGroup] = None
    quote = ""

    for message in normalized:
        if not message.text:
            continue

        if not message.is_bot_authored and is_likely_question(message.text):
            current = QAGroup(question=message)
            quote = message.text[:QUOTE_PREFIX_LENGTH].lower()
            groups.append(current)
            continue

        if current is None or not _is_candidate_answer(message, current.question, quote):
            continue

        current.answers.append(message)
        if message.is_bot_authored and (message.bot_id in own_ids or message.author_id in own_ids):
            current.bot_answer = message
            current.bot_confidence = BOT_ANSWER_CONFIDENCE

    found = [group for group in groups if group.answers]
    logger.debug("Identified %s Q&A groups in %s messages", len(found), len(normalized))
    return found


class HistoryMiner:

    def __init__(self, knowledge: KnowledgeStore, question_log: QuestionLog | None = None):
        self.knowledge = knowledge
        self.question_log = question_log

    def score_and_store(self, groups: Iterable[QAGroup], scope_tag: str | None = None) -> int:
        stored = 0
        for group in groups:
            try:
                answer = group.answer_text
                if not answer:
                    continue
                if self.knowledge.upsert(group.question.text, answer, group.confidence, scope_tag):
                    stored += 1
            except Exception as e:
                logger.exception("Error storing learned Q&A for question %r: %s", group.question.text[:50], e)
        return stored

    def mine_bot_history(self, limit: int = BOT_HISTORY_LIMIT) -> int:
        """Replay exchanges the resolver already answered successfully."""
        if self.question_log is None or not self.question_log.enabled:
            logger.info("Cannot learn from bot history: question log not connected")
            return 0

        learned = 0
        exchanges = self.question_log.matched_exchanges(limit)
        logger.info("Found %s matched questions in history", len(exchanges))
        for exchange in exchanges:
            question = exchange.get("question")
            response = exchange.get("response")
            if not question or not response:
                logger.debug("Skipping entry with missing question or response")
                continue
            try:
                scope = exchange.get("program_name") or DEFAULT_SCOPE
                if self.knowledge.upsert(question, response, BOT_HISTORY_CONFIDENCE, scope):
                    learned += 1
            except Exception as e:
                logger.exception("Error learning from bot history: %s", e)

        logger.info("Learned %s Q&A pairs from bot history", learned)
        return learned

    def mine_channel_history(self, source) -> int:
        learned = 0
        own_ids = source.own_bot_ids()
        for channel in source.list_member_channels():
            name = channel.get("name") or channel.get("id")
            try:
                messages = source.fetch_history(channel["id"])
                if not messages:
                    logger.debug("No messages found in channel: %s", name)
                    continue

                groups = mine_channel(messages, own_ids, channel_id=channel["id"])
                topic = (channel.get("topic") or {}).get("value")
                scope = extract_program_name(channel.get("name"), topic)
                stored = self.score_and_store(groups, scope)
                learned += stored
                logger.info(
                    "Channel %s: %s messages, %s Q&A groups, %s stored",
                    name, len(messages), len(groups), stored,
                )
            except Exception as e:
                logger.exception("Error learning from channel %s: %s", name, e)
        return learned

    def run_one_pass(self, source=None) -> int:
        """
        One full learning pass. Never raises; returns the number of entries
        inserted or updated.
        """
        learned = 0
        try:
            if source is not None:
                learned += self.mine_channel_history(source)
            learned += self.mine_bot_history()
        except Exception as e:
            logger.exception("Learning pass failed: %s", e)
        logger.info("Learning pass complete. Learned %s Q&A pairs.", learned)
        return learned
