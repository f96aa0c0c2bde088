"""
Two-tier pattern matching over incoming questions.

Tier 1 is a phrase table: the first key phrase found in the lower-cased
question returns its canned answer. Tier 2 is an ordered list of regex
rules whose responders can interpolate course links or matched groups.
Tier 1 always wins over tier 2.
"""
import re
from dataclasses import dataclass
from typing import Callable, Optional

from learnbot.logger import logger
from learnbot.topics import COURSE_INFO, Topic


KEYWORD_ANSWERS = {
    "course schedule": (
        "The course schedule is available on the learning portal under 'Calendar'. "
        "Classes are held Monday, Wednesday, and Friday from 10am-12pm."
    ),
    "assignment deadline": (
        "Assignment deadlines are typically set for Sundays at 11:59 PM. "
        "Please check the specific assignment for exact deadlines."
    ),
    "how to submit": (
        "Assignments should be submitted through the learning portal. Go to 'Assignments', "
        "select the relevant assignment, and click 'Submit' to upload your work."
    ),
    "grading policy": (
        "The course is graded as follows: Assignments (40%), Midterm (25%), Final Project (25%), "
        "Participation (10%). You need at least 70% to pass the course."
    ),
    "technical help": (
        f"For technical issues, please email {COURSE_INFO['support_email']} or visit the Help Desk "
        "in Room 201 during business hours (9am-5pm)."
    ),
    "office hours": (
        "Instructor office hours are Tuesdays and Thursdays from 2-4pm in Room 305, or by appointment. "
        "Teaching assistants hold additional help sessions on Wednesdays from 3-5pm."
    ),
}


ZOOM_JOIN_ANSWER = (
    "To join the live Zoom session:\n"
    "1. Open the session link shared in this channel or on the calendar.\n"
    "2. Sign in to Zoom with the email you registered with.\n"
    "3. Allow audio and video access when your browser asks.\n"
    "If the link doesn't work, check that you're using the latest Zoom client "
    f"or email {COURSE_INFO['support_email']}."
)


@dataclass(frozen=True)
class PatternRule:
    name: str
    trigger: re.Pattern
    respond: Callable[[re.Match], str]
    topic: Topic

    def match(self, text: str) -> Optional[str]:
        found = self.trigger.search(text)
        if not found:
            return None
        return self.respond(found)


def _rule(name: str, pattern: str, respond: Callable[[re.Match], str], topic: Topic) -> PatternRule:
    return PatternRule(name, re.compile(pattern, re.IGNORECASE), respond, topic)


PATTERN_RULES = (
    _rule(
        "zoom_join",
        r"\b(join|access|enter|get into|connect to)\b.*\b(zoom|meeting|live session|class)\b",
        lambda m: ZOOM_JOIN_ANSWER,
        Topic.ZOOM,
    ),
    _rule(
        "zoom_av",
        r"\b(audio|microphone|mic|camera|video)\b.*\bzoom\b|\bzoom\b.*\b(audio|microphone|mic|camera)\b",
        lambda m: (
            "For Zoom audio or video trouble, leave and rejoin the meeting, then check that Zoom "
            "has microphone and camera permission in your system settings. "
            f"Still stuck? Email {COURSE_INFO['support_email']}."
        ),
        Topic.ZOOM,
    ),
    _rule(
        "recordings",
        r"\b(where|how|can)\b.*\b(recordings?|session videos?)\b",
        lambda m: (
            f"Session recordings are in the shared folder: {COURSE_INFO['recordings_url']}\n"
            f"This short video shows how to find them: {COURSE_INFO['recordings_access_video']}"
        ),
        Topic.RECORDINGS,
    ),
    _rule(
        "portal_login",
        r"\b(log ?in|sign ?in|portal)\b",
        lambda m: (
            f"You can sign in to the learning portal here: {COURSE_INFO['portal_url']}\n"
            f"Walkthrough video: {COURSE_INFO['portal_access_video']}"
        ),
        Topic.PORTAL,
    ),
    _rule(
        "calendar",
        r"\b(calendar|timetable|schedule)\b",
        lambda m: f"The program calendar is here: {COURSE_INFO['calendar_url']}",
        Topic.SCHEDULE,
    ),
    _rule(
        "assignment_due",
        r"when\s+is\s+(\w+)\s+due",
        lambda m: (
            f"The {m.group(1)} assignment is due on Sunday at 11:59 PM. "
            "Please check the learning portal for the exact date."
        ),
        Topic.DEADLINES,
    ),
    _rule(
        "resource_access",
        r"how\s+do\s+i\s+access\s+(\w+)",
        lambda m: (
            f"To access {m.group(1)}, log into the learning portal and look under the Resources tab. "
            "If you don't see it, please contact your instructor."
        ),
        Topic.ACCESS,
    ),
    _rule(
        "contact_support",
        r"\b(contact|email|reach)\b.*\b(support|help ?desk|team)\b",
        lambda m: f"You can reach the support team at {COURSE_INFO['support_email']}.",
        Topic.SUPPORT,
    ),
)


class PatternMatcher:

    def __init__(self, keyword_answers: dict | None = None, rules=PATTERN_RULES):
        self.keyword_answers = dict(KEYWORD_ANSWERS if keyword_answers is None else keyword_answers)
        self.rules = tuple(rules)

    def match(self, text: str | None) -> Optional[str]:
        """Answer for the first matching tier, or None."""
        result = self.match_with_topic(text)
        return result[0] if result else None

    def match_with_topic(self, text: str | None) -> Optional[tuple[str, Optional[Topic]]]:
        if not text:
            return None

        normalized = text.lower()
        for phrase, answer in self.keyword_answers.items():
            if phrase in normalized:
                logger.debug("Keyword table matched phrase '%s'", phrase)
                return answer, None

        for rule in self.rules:
            answer = rule.match(text)
            if answer:
                logger.debug("Pattern rule '%s' matched", rule.name)
                return answer, rule.topic

        return None
