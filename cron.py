"""
Standalone learning run for a scheduler such as cron or a platform job.

Mines channel history in every configured workspace, replays matched
bot answers, refreshes channel link scans, then exits. Exits non-zero
when MongoDB cannot be reached since there is nowhere to store results.
"""
import sys
import time

from slack_sdk import WebClient

from learnbot.logger import logger
from learnbot.config import BATCH_REQUIRED_VARS, get_bot_tokens, validate_environment_variables
from learnbot import db as database
from learnbot.channels import ChannelDirectory
from learnbot.constants import LEARNED_QA_COLLECTION, QUESTIONS_COLLECTION, WORKSPACE_DELAY_SECONDS
from learnbot.knowledge import KnowledgeStore
from learnbot.miner import HistoryMiner
from learnbot.question_log import QuestionLog
from learnbot.slack_source import SlackHistorySource


def scheduled_learning() -> int:
    validate_environment_variables(BATCH_REQUIRED_VARS)

    tokens = get_bot_tokens()
    if not tokens:
        logger.critical("No Slack bot token configured (SLACK_BOT_TOKEN or SLACK_BOT_TOKENS)")
        return 1

    try:
        mongo = database.connect(strict=True)
    except Exception:
        logger.critical("Failed to connect to MongoDB. Exiting.")
        return 1

    try:
        knowledge = KnowledgeStore(mongo[LEARNED_QA_COLLECTION])
        knowledge.ensure_indexes()
        question_log = QuestionLog(mongo[QUESTIONS_COLLECTION])
        miner = HistoryMiner(knowledge, question_log)

        total = 0
        for index, token in enumerate(tokens):
            if index:
                # Fixed pause between workspaces to stay under Slack rate limits
                time.sleep(WORKSPACE_DELAY_SECONDS)
            source = SlackHistorySource(WebClient(token=token))
            learned = miner.mine_channel_history(source)
            logger.info("Workspace %s/%s: learned %s Q&A pairs from channel history", index + 1, len(tokens), learned)
            total += learned

            logger.info("Scanning channels for new content...")
            ChannelDirectory(source).scan_all_channels()

        bot_learned = miner.mine_bot_history()
        logger.info("Learned %s Q&A pairs from bot history.", bot_learned)
        logger.info("Scheduled learning completed successfully. Learned %s Q&A pairs in total.", total + bot_learned)
        return 0
    except Exception:
        logger.exception("Error during scheduled learning")
        return 1
    finally:
        database.close(mongo)


if __name__ == "__main__":
    sys.exit(scheduled_learning())
