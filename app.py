import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from slack_bolt import App
from slack_bolt.adapter.fastapi import SlackRequestHandler

from learnbot.logger import logger
from learnbot.config import is_learning_enabled, validate_environment_variables
from learnbot import db as database
from learnbot.admin_commands import handle_admin_command
from learnbot.channels import ChannelDirectory
from learnbot.constants import LEARNED_QA_COLLECTION, MAX_TEXT_LENGTH, QUESTIONS_COLLECTION
from learnbot.knowledge import KnowledgeStore
from learnbot.llm import FallbackGenerator
from learnbot.miner import HistoryMiner
from learnbot.patterns import PatternMatcher
from learnbot.question_log import QuestionLog
from learnbot.resolver import QueryResolver
from learnbot.scheduler import LearningScheduler
from learnbot.sessions import SessionStore
from learnbot.slack_source import SlackHistorySource
from learnbot.utils import strip_leading_mention

# Validate environment variables at startup
validate_environment_variables()

# Slack app setup
slack_app = App(
    token=os.environ["SLACK_BOT_TOKEN"],
    signing_secret=os.environ["SLACK_SIGNING_SECRET"],
    # Ensure Slack gets an ACK within 3 seconds even if processing is longer
    process_before_response=True,
)

mongo = database.connect()
knowledge = KnowledgeStore(mongo[LEARNED_QA_COLLECTION] if mongo is not None else None)
question_log = QuestionLog(mongo[QUESTIONS_COLLECTION] if mongo is not None else None)
knowledge.ensure_indexes()
question_log.ensure_indexes()

history_source = SlackHistorySource(slack_app.client)
channel_directory = ChannelDirectory(history_source)
miner = HistoryMiner(knowledge, question_log)
resolver = QueryResolver(
    sessions=SessionStore(),
    matcher=PatternMatcher(),
    knowledge=knowledge,
    fallback=FallbackGenerator.from_env(),
    question_log=question_log,
)


def run_learning_pass() -> int:
    return miner.run_one_pass(history_source)


learning_scheduler = LearningScheduler(run_learning_pass, channel_directory.scan_all_channels)

INTRO_MESSAGE = (
    "Hi there! I'm your learning assistant. "
    "Ask me anything about your program and I'll do my best to help."
)
ERROR_MESSAGE = "I'm sorry, I encountered an error while processing your message. Please try again."


def answer(text: str, user_id: str | None, channel_id: str | None, thread_id: str | None = None) -> str:
    if len(text) > MAX_TEXT_LENGTH:
        return (
            f"Your message is too long ({len(text)} characters). "
            f"Please shorten it to under {MAX_TEXT_LENGTH} characters."
        )

    admin_reply = handle_admin_command(text, user_id, question_log, knowledge, run_learning_pass)
    if admin_reply is not None:
        return admin_reply

    context = channel_directory.message_context(channel_id, user_id)
    resolution = resolver.resolve(
        text,
        participant_id=user_id or "unknown",
        channel_id=channel_id or "unknown",
        context=context,
        thread_id=thread_id,
    )
    logger.debug("Resolved via %s (matched=%s)", resolution.source, resolution.matched)
    return resolution.text


@slack_app.event("app_mention")
def handle_mention(event, say):
    text = strip_leading_mention(event.get("text", ""))
    thread_ts = event.get("thread_ts") or event.get("ts")
    try:
        if not text:
            say(text=INTRO_MESSAGE, thread_ts=thread_ts)
            return
        say(text=answer(text, event.get("user"), event.get("channel"), thread_ts), thread_ts=thread_ts)
    except Exception:
        logger.exception("Error processing mention")
        say(text=ERROR_MESSAGE, thread_ts=thread_ts)


@slack_app.event("message")
def handle_direct_message(event, say):
    # Channel traffic is only answered on mention; DMs are always answered
    if event.get("channel_type") != "im" or event.get("bot_id") or event.get("subtype"):
        return
    text = (event.get("text") or "").strip()
    if not text:
        return
    try:
        say(answer(text, event.get("user"), event.get("channel")))
    except Exception:
        logger.exception("Error processing direct message")
        say(ERROR_MESSAGE)


@asynccontextmanager
async def lifespan(app):
    if mongo is not None and is_learning_enabled():
        learning_scheduler.start()
    else:
        logger.info("Scheduled learning disabled")
    yield
    learning_scheduler.stop()
    database.close(mongo)


fastapi_app = FastAPI(lifespan=lifespan)
handler = SlackRequestHandler(slack_app)


@fastapi_app.post("/slack/events")
async def slack_events(request: Request):
    try:
        await request.json()
    except Exception:
        raise HTTPException(status_code=400, detail="No JSON received")

    # Delegate to Slack Bolt FastAPI handler
    return await handler.handle(request)


@fastapi_app.get("/")
async def ping():
    return JSONResponse({"status": "ok", "knowledge_store": knowledge.is_durable})


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app:fastapi_app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", 3000)),
        reload=os.getenv("ENV") != "prod",
    )
