"""
Program detection and resource-link scanning for Slack channels.

A channel's program name doubles as the knowledge scope tag, so answers
learned in one program's channels are preferred for that program.
"""
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from learnbot.cache import TTLCache
from learnbot.constants import (
    CHANNEL_CONTENT_CACHE_TTL_SECONDS,
    CHANNEL_SCAN_HISTORY_LIMIT,
    DEFAULT_SCOPE,
    PROGRAM_CACHE_TTL_SECONDS,
)
from learnbot.logger import logger
from learnbot.utils import contains

PROGRAM_KEYWORDS = (
    "databricks", "azure", "aws", "gcp", "snowflake",
    "python", "java", "javascript", "react", "nodejs",
    "machine-learning", "data-science", "devops", "cloud",
)
FALLBACK_PROGRAM_NAME = "Learning Program"

URL_PATTERN = re.compile(r"https?://[^\s<>|]+")

LINK_KEYWORDS = {
    "recording": ("recording", "session video", "recording link", "watch the session"),
    "calendar": ("calendar", "schedule", "timetable", "upcoming sessions"),
    "portal": ("learning portal", "course portal", "login to the course", "sign in to the portal"),
    "resource": ("resource", "material", "document", "guide"),
}


def _title_words(words) -> str:
    return " ".join(word[:1].upper() + word[1:].lower() for word in words if word)


def extract_program_name(channel_name: str | None, channel_topic: str | None = None) -> str:
    """Known program keyword in the channel name, then in its topic, else the cleaned channel name."""
    for source in (channel_name or "", channel_topic or ""):
        lowered = source.lower()
        for keyword in PROGRAM_KEYWORDS:
            if keyword in lowered:
                return _title_words(keyword.split("-"))

    cleaned = re.sub(r"[^a-zA-Z0-9]+", " ", channel_name or "").split()
    if cleaned:
        return _title_words(cleaned)
    return FALLBACK_PROGRAM_NAME


@dataclass(frozen=True)
class LinkRecord:
    kind: str
    urls: tuple[str, ...]
    timestamp: str
    text: str = ""

    @property
    def ts(self) -> float:
        try:
            return float(self.timestamp)
        except (TypeError, ValueError):
            return 0.0


def scan_message_for_links(message: dict) -> Optional[LinkRecord]:
    """Categorise the URLs in a Slack message by the words around them."""
    text = (message or {}).get("text") or ""
    urls = URL_PATTERN.findall(text)
    if not urls:
        return None

    lowered = text.lower()
    kind = "general"
    for candidate, keywords in LINK_KEYWORDS.items():
        if contains(lowered, keywords):
            kind = candidate
            break
    return LinkRecord(kind, tuple(urls), str(message.get("ts") or "0"), text)


@dataclass
class ChannelContent:
    recordings: list[LinkRecord] = field(default_factory=list)
    calendars: list[LinkRecord] = field(default_factory=list)
    portals: list[LinkRecord] = field(default_factory=list)
    resources: list[LinkRecord] = field(default_factory=list)
    last_scan_time: str = field(default_factory=lambda: datetime.utcnow().isoformat() + "Z")

    def add(self, record: LinkRecord) -> None:
        bucket = {
            "recording": self.recordings,
            "calendar": self.calendars,
            "portal": self.portals,
        }.get(record.kind, self.resources)
        bucket.append(record)

    def sort_newest_first(self) -> None:
        for bucket in (self.recordings, self.calendars, self.portals, self.resources):
            bucket.sort(key=lambda record: record.ts, reverse=True)


@dataclass
class ProgramInfo:
    channel_id: Optional[str]
    channel_name: str
    program_name: str
    is_private: bool = False
    content: ChannelContent = field(default_factory=ChannelContent)


@dataclass
class MessageContext:
    user_id: Optional[str]
    program: Optional[ProgramInfo] = None

    @property
    def program_name(self) -> str:
        return self.program.program_name if self.program else DEFAULT_SCOPE


class ChannelDirectory:

    def __init__(
        self,
        source,
        program_cache: TTLCache | None = None,
        user_program_cache: TTLCache | None = None,
        content_cache: TTLCache | None = None,
    ):
        """
        Args:
            source: SlackHistorySource (or anything with the same methods)
        """
        self.source = source
        if program_cache is None:
            program_cache = TTLCache(maxsize=2000, ttl=PROGRAM_CACHE_TTL_SECONDS)
        if user_program_cache is None:
            user_program_cache = TTLCache(maxsize=10_000, ttl=PROGRAM_CACHE_TTL_SECONDS)
        if content_cache is None:
            content_cache = TTLCache(maxsize=2000, ttl=CHANNEL_CONTENT_CACHE_TTL_SECONDS)
        self.program_cache = program_cache
        self.user_program_cache = user_program_cache
        self.content_cache = content_cache

    def program_info(self, channel_id: str) -> ProgramInfo:
        cached = self.program_cache.get(channel_id)
        if cached is not None:
            return cached

        channel = self.source.channel_info(channel_id)
        if not channel:
            logger.warning("Could not load channel %s, using default program info", channel_id)
            return ProgramInfo(channel_id, "unknown", FALLBACK_PROGRAM_NAME)

        name = channel.get("name") or ""
        topic = (channel.get("topic") or {}).get("value") or ""
        info = ProgramInfo(
            channel_id=channel_id,
            channel_name=name,
            program_name=extract_program_name(name, topic),
            is_private=bool(channel.get("is_private")),
        )
        self.program_cache.set(channel_id, info)
        return info

    def user_program(self, user_id: str) -> Optional[ProgramInfo]:
        """Primary program of a user, taken from the first channel they are in."""
        cached = self.user_program_cache.get(user_id)
        if cached is not None:
            return cached

        programs = [self.program_info(channel["id"]) for channel in self.source.user_channels(user_id) if channel.get("id")]
        if not programs:
            return None

        self.user_program_cache.set(user_id, programs[0])
        return programs[0]

    def scan_channel(self, channel_id: str) -> ChannelContent:
        cached = self.content_cache.get(channel_id)
        if cached is not None:
            return cached

        content = ChannelContent()
        channel = self.source.channel_info(channel_id)
        if not channel or not channel.get("is_member"):
            logger.info("Cannot scan channel %s: bot is not a member", channel_id)
            # Cache empty results to avoid repeated failures
            self.content_cache.set(channel_id, content)
            return content

        for message in self.source.fetch_history(channel_id, limit=CHANNEL_SCAN_HISTORY_LIMIT):
            record = scan_message_for_links(message)
            if record:
                content.add(record)

        content.sort_newest_first()
        self.content_cache.set(channel_id, content)
        return content

    def message_context(self, channel_id: str | None, user_id: str | None) -> MessageContext:
        if not channel_id:
            return MessageContext(user_id)

        # Direct messages: use the program of the user's channels
        if channel_id.startswith("D"):
            return MessageContext(user_id, self.user_program(user_id) if user_id else None)

        program = self.program_info(channel_id)
        program.content = self.scan_channel(channel_id)
        return MessageContext(user_id, program)

    def scan_all_channels(self) -> int:
        """Refresh link content for every member channel. Returns channels scanned."""
        logger.info("Starting scheduled channel scan...")
        scanned = 0
        for channel in self.source.list_member_channels():
            channel_id = channel.get("id")
            if not channel_id:
                continue
            try:
                self.content_cache.delete(channel_id)
                self.scan_channel(channel_id)
                scanned += 1
                logger.debug("Scanned channel: %s", channel.get("name"))
            except Exception as e:
                logger.exception("Error scanning channel %s: %s", channel.get("name"), e)
        logger.info("Scheduled channel scan complete (%s channels)", scanned)
        return scanned


_LINK_QUERIES = (
    (("recording", "video", "watch"), "recordings", "Here's the most recent recording link"),
    (("calendar", "schedule", "timetable"), "calendars", "Here's the calendar link"),
    (("portal", "login", "sign in", "access course"), "portals", "Here's the learning portal link"),
    (("resource", "material", "document", "guide"), "resources", "Here's a resource link"),
)


def get_link_response(query: str, context: MessageContext | None) -> Optional[str]:
    """Latest scanned link of the kind the query asks for."""
    if not query or not context or not context.program:
        return None

    lowered = query.lower()
    program = context.program
    for keywords, bucket_name, lead in _LINK_QUERIES:
        if not contains(lowered, keywords):
            continue
        bucket = getattr(program.content, bucket_name)
        if bucket:
            return f"{lead} for the {program.program_name} program: {bucket[0].urls[0]}"
    return None


def customize_response(answer: str, context: MessageContext | None) -> str:
    if not context or not context.program:
        return answer
    program_name = context.program.program_name
    if program_name in answer:
        return answer
    return f"{answer}\n\nI'm your assistant for the {program_name} program. Let me know if you need anything else!"
