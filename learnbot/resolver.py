"""
Query resolution: session intents, then pattern, learned knowledge,
channel links and generative fallback, in that order.
"""
from dataclasses import dataclass
from typing import Optional

from learnbot.channels import MessageContext, customize_response, get_link_response
from learnbot.constants import DEFAULT_SCOPE, RECORDED_EXCHANGE_CONFIDENCE
from learnbot.knowledge import KnowledgeStore, LookupStatus
from learnbot.llm import FallbackGenerator
from learnbot.logger import logger
from learnbot.patterns import PatternMatcher
from learnbot.question_log import QuestionLog
from learnbot.sessions import (
    SessionState,
    SessionStore,
    is_greeting,
    is_help_request,
    is_thank_you,
)
from learnbot.topics import Topic, identify_topic

GREETING_RESPONSE = (
    "Hi there! I'm your learning assistant. Ask me about Zoom sessions, recordings, "
    "the learning portal, assessments or deadlines."
)
THANKS_RESPONSE = "You're welcome! Let me know if there's anything else I can help with."
HELP_RESPONSE = (
    "I can help with questions like:\n"
    "- How do I join the Zoom meeting?\n"
    "- Where can I find the session recordings?\n"
    "- How do I log in to the learning portal?\n"
    "- When is the assignment due?\n"
    "Just ask in plain words, and I'll learn from the answers shared in this channel."
)
DEFAULT_RESPONSE = (
    "I'm not sure I understand that question. Could you rephrase it or ask about Zoom, "
    "ILT sessions, recordings, or the learning portal?"
)


@dataclass(frozen=True)
class Resolution:
    text: str
    # greeting, thanks, help, pattern, knowledge, channel_link, fallback, default, empty
    source: str
    matched: bool
    state: Optional[SessionState]
    topic: Optional[Topic] = None
    thread_id: Optional[str] = None


class QueryResolver:

    def __init__(
        self,
        sessions: SessionStore,
        matcher: PatternMatcher | None = None,
        knowledge: KnowledgeStore | None = None,
        fallback: FallbackGenerator | None = None,
        question_log: QuestionLog | None = None,
    ):
        self.sessions = sessions
        self.matcher = matcher or PatternMatcher()
        self.knowledge = knowledge
        self.fallback = fallback
        self.question_log = question_log

    def resolve(
        self,
        text: str | None,
        participant_id: str,
        channel_id: str,
        context: MessageContext | None = None,
        thread_id: str | None = None,
    ) -> Resolution:
        if not text or not text.strip():
            return Resolution(DEFAULT_RESPONSE, "empty", False, None, thread_id=thread_id)

        query = text.strip()
        resolution = self._resolve(query, participant_id, channel_id, context, thread_id)
        self._log(query, participant_id, channel_id, context, resolution)
        return resolution

    def _resolve(
        self,
        query: str,
        participant_id: str,
        channel_id: str,
        context: MessageContext | None,
        thread_id: str | None,
    ) -> Resolution:
        session = self.sessions.get_or_create(participant_id, channel_id)

        def finish(response: str, source: str, matched: bool, state: SessionState, topic: Topic | None = None):
            self.sessions.update(
                participant_id,
                channel_id,
                state=state,
                last_topic=topic or session.last_topic,
                query=query,
                response=response,
            )
            return Resolution(response, source, matched, state, topic, thread_id)

        if is_greeting(query):
            return finish(GREETING_RESPONSE, "greeting", True, SessionState.AWAITING_TOPIC)
        if is_thank_you(query):
            return finish(THANKS_RESPONSE, "thanks", True, SessionState.FOLLOWUP)
        if is_help_request(query):
            return finish(HELP_RESPONSE, "help", True, SessionState.AWAITING_TOPIC)

        topic = identify_topic(query)
        scope = context.program_name if context else DEFAULT_SCOPE

        pattern = self.matcher.match_with_topic(query)
        if pattern:
            answer, rule_topic = pattern
            return finish(answer, "pattern", True, SessionState.ANSWERING, rule_topic or topic)

        if self.knowledge is not None:
            result = self.knowledge.find(query, scope)
            if result.found:
                logger.debug("Answered from knowledge (%s)", result.source)
                answer = customize_response(result.entry.answer, context)
                return finish(answer, "knowledge", True, SessionState.ANSWERING, topic)
            if result.status is LookupStatus.UNAVAILABLE:
                logger.warning("Knowledge store unavailable, skipping learned answers: %s", result.error)

        link = get_link_response(query, context)
        if link:
            return finish(link, "channel_link", True, SessionState.ANSWERING, topic)

        if self.fallback is not None and self.fallback.enabled:
            answer = self.fallback.generate(query, list(session.history), topic or session.last_topic)
            if answer:
                if self.knowledge is not None:
                    self.knowledge.upsert(query, answer, RECORDED_EXCHANGE_CONFIDENCE, scope)
                return finish(answer, "fallback", True, SessionState.ANSWERING, topic)

        logger.info("Failed to answer question: %s", query[:100])
        return finish(DEFAULT_RESPONSE, "default", False, SessionState.AWAITING_TOPIC, topic)

    def _log(
        self,
        query: str,
        participant_id: str,
        channel_id: str,
        context: MessageContext | None,
        resolution: Resolution,
    ) -> None:
        # Small talk carries nothing worth learning
        if self.question_log is None or resolution.source in ("greeting", "thanks", "help"):
            return
        try:
            self.question_log.log_question(
                user_id=participant_id,
                channel_id=channel_id,
                question=query,
                response=resolution.text,
                matched=resolution.matched,
                program_name=context.program_name if context else DEFAULT_SCOPE,
                source=resolution.source,
                channel_name=context.program.channel_name if context and context.program else None,
            )
        except Exception as e:
            logger.exception("Error logging question: %s", e)
