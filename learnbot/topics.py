"""
Topic labels and keyword-based topic identification.
"""
import os
from enum import Enum


class Topic(str, Enum):
    # Declaration order breaks ties in identify_topic
    ZOOM = "zoom"
    SLACK = "slack"
    RECORDINGS = "recordings"
    LEARNING = "learning"
    ILT = "ilt"
    ASSESSMENT = "assessment"
    SCHEDULE = "schedule"
    DEADLINES = "deadlines"
    ACCESS = "access"
    PORTAL = "portal"
    LOGIN = "login"
    TECHNICAL = "technical"
    CONNECTIVITY = "connectivity"
    SUPPORT = "support"


TOPIC_KEYWORDS = {
    Topic.ZOOM: ("zoom", "meeting", "join", "audio", "video", "microphone", "camera"),
    Topic.SLACK: ("slack", "workspace", "thread"),
    Topic.RECORDINGS: ("recording", "recordings", "session video", "watch session"),
    Topic.LEARNING: ("learning", "module", "self-paced", "course content"),
    Topic.ILT: ("ilt", "instructor led", "live session", "mentor"),
    Topic.ASSESSMENT: ("assessment", "mock test", "partial mock", "test", "exam"),
    Topic.SCHEDULE: ("schedule", "calendar", "timetable", "when"),
    Topic.DEADLINES: ("deadline", "extend", "timeline", "due date"),
    Topic.ACCESS: ("access", "permission", "unlock"),
    Topic.PORTAL: ("portal", "login", "sign in", "enqurious"),
    Topic.LOGIN: ("password", "credentials", "locked out"),
    Topic.TECHNICAL: ("technical", "issue", "problem", "error", "trouble"),
    Topic.CONNECTIVITY: ("internet", "connection", "disconnect", "network", "wifi"),
    Topic.SUPPORT: ("help", "support", "assistance", "contact"),
}


# Course links and contacts interpolated into canned answers
COURSE_INFO = {
    "support_email": os.getenv("COURSE_SUPPORT_EMAIL", "support@enqurious.com"),
    "portal_url": os.getenv(
        "COURSE_PORTAL_URL", "https://www.tredence.enqurious.com/auth/login?redirect_uri=/"
    ),
    "calendar_url": os.getenv(
        "COURSE_CALENDAR_URL",
        "https://docs.google.com/spreadsheets/d/11kw1hvG5dLX9a6GwRd1UF_Mq9ivgCJvr-_2mtd6Z7OQ/edit?gid=0#gid=0",
    ),
    "recordings_url": os.getenv(
        "COURSE_RECORDINGS_URL",
        "https://drive.google.com/drive/folders/1I6wXvcKTyXzxsQd19SpOmFrbIWta7vnq?usp=sharing",
    ),
    "recordings_access_video": "https://drive.google.com/file/d/1VSP-WKi8f8GStQ_UMuzqtRvGZindhl_n/view",
    "portal_access_video": "https://drive.google.com/file/d/1VSP-WKi8f8GStQ_UMuzqtRvGZindhl_n/view",
    "learning_portal_video": "https://drive.google.com/file/d/1fIyf4GCcOSxYQ4MhJIblJ5_dWx4aHGI6/view?usp=drive_link",
}


def identify_topic(text: str | None) -> Topic | None:
    """
    Return the topic with the most distinct keyword hits, or None when
    nothing matches. Ties go to the topic declared first.
    """
    if not text:
        return None

    lowered = text.lower()
    best_topic = None
    best_score = 0

    for topic in Topic:
        score = sum(1 for keyword in TOPIC_KEYWORDS.get(topic, ()) if keyword in lowered)
        if score > best_score:
            best_topic, best_score = topic, score

    return best_topic


def get_topic_urls(topic: Topic | None) -> dict | None:
    """Primary (and optional help video) link for topics that have one."""
    mapping = {
        Topic.PORTAL: {
            "primary": COURSE_INFO["portal_url"],
            "help": COURSE_INFO["portal_access_video"],
        },
        Topic.SCHEDULE: {
            "primary": COURSE_INFO["calendar_url"],
        },
        Topic.RECORDINGS: {
            "primary": COURSE_INFO["recordings_url"],
            "help": COURSE_INFO["recordings_access_video"],
        },
        Topic.LEARNING: {
            "primary": COURSE_INFO["portal_url"],
            "help": COURSE_INFO["learning_portal_video"],
        },
    }
    return mapping.get(topic)
