from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ChatMessage:
    text: str
    author_id: Optional[str]
    channel_id: Optional[str]
    timestamp: str
    thread_id: Optional[str] = None
    is_bot_authored: bool = False
    bot_id: Optional[str] = None

    @property
    def ts(self) -> float:
        try:
            return float(self.timestamp)
        except (TypeError, ValueError):
            return 0.0

    @classmethod
    def from_slack(cls, message: dict, channel_id: str | None = None) -> "ChatMessage":
        """Build from a Slack message or event payload."""
        bot_id = message.get("bot_id")
        is_bot = bool(bot_id) or message.get("subtype") == "bot_message"
        thread_ts = message.get("thread_ts")
        return cls(
            text=message.get("text") or "",
            author_id=message.get("user") or bot_id,
            channel_id=message.get("channel") or channel_id,
            timestamp=str(message.get("ts") or "0"),
            # A thread parent carries its own ts as thread_ts
            thread_id=thread_ts if thread_ts and thread_ts != message.get("ts") else None,
            is_bot_authored=is_bot,
            bot_id=bot_id,
        )
