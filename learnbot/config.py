"""
Configuration and environment variable validation.
"""
import os
import sys

from learnbot.logger import logger


SERVER_REQUIRED_VARS = {
    "SLACK_BOT_TOKEN": "Slack bot token for authentication",
    "SLACK_SIGNING_SECRET": "Slack signing secret for request verification",
}

BATCH_REQUIRED_VARS = {
    "MONGO_URL": "MongoDB connection URL (batch learning has nowhere to write without it)",
}

OPTIONAL_VARS = {
    "MONGO_URL": "MongoDB connection URL (knowledge store and question log are disabled without it)",
    "OPENAI_API_KEY": "OpenAI API key for generative fallback answers (optional)",
    "SLACK_BOT_TOKENS": "Comma-separated bot tokens for batch learning across workspaces (optional)",
    "ADMIN_USER_ID": "Slack user allowed to run admin commands (optional)",
    "LEARNING_ENABLED": "Run scheduled learning in the server process (defaults to true)",
    "PORT": "Server port (defaults to 3000 if not set)",
    "ENV": "Environment (prod/dev, defaults to dev if not set)",
}


def validate_environment_variables(required_vars: dict | None = None) -> None:
    """
    Validate all required environment variables at startup.
    Exits the application with a clear error message if any are missing.
    Optional variables are only reported, the features behind them degrade to no-ops.
    """
    required_vars = SERVER_REQUIRED_VARS if required_vars is None else required_vars

    missing_vars = []

    for var_name, description in required_vars.items():
        value = os.getenv(var_name)
        if not value or not value.strip():
            missing_vars.append(f"  - {var_name}: {description}")
            logger.error(f"Missing required environment variable: {var_name}")

    if missing_vars:
        error_message = (
            "Missing required environment variables:\n"
            + "\n".join(missing_vars)
            + "\n\nPlease set these variables before starting the application."
        )
        logger.critical(error_message)
        print(error_message, file=sys.stderr)
        sys.exit(1)

    for var_name, description in OPTIONAL_VARS.items():
        if var_name in required_vars:
            continue
        value = os.getenv(var_name)
        if not value or not value.strip():
            logger.info(f"Optional environment variable not set: {var_name} - {description}")
        else:
            logger.debug(f"Environment variable set: {var_name}")

    logger.info("Environment variable validation completed successfully")


def get_bot_tokens() -> list[str]:
    """
    Bot tokens for every workspace the batch learner should visit.
    Falls back to the single SLACK_BOT_TOKEN.
    """
    raw = os.getenv("SLACK_BOT_TOKENS") or os.getenv("SLACK_BOT_TOKEN") or ""
    return [token.strip() for token in raw.split(",") if token.strip()]


def is_learning_enabled() -> bool:
    return os.getenv("LEARNING_ENABLED", "true").strip().lower() not in ("0", "false", "no")
