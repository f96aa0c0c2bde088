"""
Admin-only commands for inspecting what the bot has learned.
"""
import os

from learnbot.knowledge import KnowledgeStore
from learnbot.logger import logger
from learnbot.question_log import QuestionLog

ADMIN_COMMANDS = ("!dbping", "!stats", "!faq", "!unanswered", "!learn", "!adminhelp")


def is_admin(user_id: str | None) -> bool:
    admin_id = os.getenv("ADMIN_USER_ID")
    return bool(admin_id) and user_id == admin_id


def get_admin_help() -> str:
    return """
    *Admin commands:*
    `!dbping` - check the MongoDB connection
    `!stats` - question totals and match rate
    `!faq` - most frequently asked questions
    `!unanswered` - questions the bot could not answer
    `!learn` - run a learning pass now
    """


def _format_grouped(title: str, rows: list[dict]) -> str:
    if not rows:
        return f"{title}: nothing recorded yet."
    lines = [f"*{title}:*"]
    lines.extend(f"{i}. {row['_id']} ({row['count']}x)" for i, row in enumerate(rows, start=1))
    return "\n".join(lines)


def handle_admin_command(
    text: str,
    user_id: str | None,
    question_log: QuestionLog,
    knowledge: KnowledgeStore,
    run_learning=None,
) -> str | None:
    """
    Reply for an admin command, or None when `text` is not one
    or the user is not the admin.
    """
    command = (text or "").strip().lower()
    if command not in ADMIN_COMMANDS or not is_admin(user_id):
        return None

    logger.info("Admin command %s from %s", command, user_id)

    if command == "!adminhelp":
        return get_admin_help()

    if command == "!dbping":
        if question_log.ping():
            return f"MongoDB is reachable. Learned entries: {knowledge.count()}"
        return "MongoDB is not connected."

    if command == "!stats":
        stats = question_log.stats()
        if not stats:
            return "No statistics available (database not connected?)."
        return (
            f"*Question stats:*\n"
            f"Total: {stats['total']}\n"
            f"Answered: {stats['matched']}\n"
            f"Unanswered: {stats['unmatched']}\n"
            f"Match rate: {stats['match_rate']:.0%}\n"
            f"Unique users: {stats['unique_users']}\n"
            f"Learned entries: {knowledge.count()}"
        )

    if command == "!faq":
        return _format_grouped("Frequent questions", question_log.frequent_questions())

    if command == "!unanswered":
        return _format_grouped("Unanswered questions", question_log.unanswered_questions())

    if run_learning is None:
        return "Learning is not available in this process."
    learned = run_learning()
    return f"Learning pass complete. Learned {learned} Q&A pairs."
