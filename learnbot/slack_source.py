"""
Read-only access to Slack channels and history for learning and scanning.

Every call degrades to an empty result on Slack API errors so one bad
channel or a missing scope never stops a learning pass.
"""
from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError

from learnbot.constants import CHANNEL_HISTORY_LIMIT, CHANNEL_LIST_LIMIT
from learnbot.logger import logger


def _error_code(error: SlackApiError) -> str:
    response = getattr(error, "response", None)
    return response.get("error", str(error)) if response is not None else str(error)


class SlackHistorySource:

    def __init__(self, client: WebClient):
        self.client = client
        self._identity: dict | None = None

    def own_bot_ids(self) -> set[str]:
        """Bot and bot-user ids of this app in the current workspace."""
        if self._identity is None:
            try:
                response = self.client.auth_test()
                self._identity = {
                    "user_id": response.get("user_id"),
                    "bot_id": response.get("bot_id"),
                    "team_id": response.get("team_id"),
                }
            except SlackApiError as e:
                logger.error("auth.test failed: %s", _error_code(e))
                return set()
        return {value for key, value in self._identity.items() if key != "team_id" and value}

    def list_member_channels(self, limit: int = CHANNEL_LIST_LIMIT) -> list[dict]:
        try:
            response = self.client.conversations_list(
                types="public_channel,private_channel",
                exclude_archived=True,
                limit=limit,
            )
        except SlackApiError as e:
            logger.error("Error listing channels: %s", _error_code(e))
            return []

        channels = response.get("channels") or []
        member_channels = [channel for channel in channels if channel.get("is_member") is True]
        logger.info(
            "Found %s channels where bot is a member out of %s total channels",
            len(member_channels),
            len(channels),
        )
        return member_channels

    def fetch_history(self, channel_id: str, limit: int = CHANNEL_HISTORY_LIMIT) -> list[dict]:
        try:
            response = self.client.conversations_history(channel=channel_id, limit=limit)
        except SlackApiError as e:
            logger.error(
                "Error fetching history for channel %s: %s",
                channel_id,
                _error_code(e),
            )
            return []
        return response.get("messages") or []

    def channel_info(self, channel_id: str) -> dict | None:
        try:
            response = self.client.conversations_info(channel=channel_id)
        except SlackApiError as e:
            logger.error(
                "Error getting channel info for %s: %s",
                channel_id,
                _error_code(e),
            )
            return None
        return response.get("channel")

    def user_channels(self, user_id: str) -> list[dict]:
        try:
            response = self.client.users_conversations(
                user=user_id,
                types="public_channel,private_channel",
            )
        except SlackApiError as e:
            logger.error(
                "Error listing channels for user %s: %s",
                user_id,
                _error_code(e),
            )
            return []
        return response.get("channels") or []
