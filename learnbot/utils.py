import re
import string


def contains(text: str, keywords) -> bool:
    return any(k in text for k in keywords)


def contains_phrase(text: str, phrases) -> bool:
    """
    Case-insensitive phrase test. Phrases must sit on word boundaries,
    so "hi" matches "hi there" but not "which".
    """
    if not text:
        return False
    lowered = text.lower()
    return any(re.search(rf"\b{re.escape(phrase)}\b", lowered) for phrase in phrases)


def strip_leading_mention(text: str) -> str:
    """
    Remove a leading Slack user mention like '<@U123ABC>' plus any following whitespace.
    """
    return re.sub(r"^<@[^>]+>\s*", "", text or "").strip()


def normalize_text(text: str | None) -> str:
    """Lower-case and collapse whitespace."""
    return " ".join((text or "").lower().split())


_PUNCTUATION_TABLE = str.maketrans({ch: " " for ch in string.punctuation})


def significant_words(text: str | None) -> set[str]:
    """Words longer than two characters, lower-cased, punctuation stripped."""
    return {word for word in normalize_text(text).translate(_PUNCTUATION_TABLE).split() if len(word) > 2}


def question_similarity(first: str | None, second: str | None) -> float:
    """
    Jaccard similarity of the significant word sets of two questions.
    Questions made only of short words compare by normalized equality.
    """
    first_words = significant_words(first)
    second_words = significant_words(second)
    if not first_words or not second_words:
        return 1.0 if normalize_text(first) == normalize_text(second) and normalize_text(first) else 0.0
    return len(first_words & second_words) / len(first_words | second_words)


def sanitize_slack_id(identifier: str | None, name: str = "identifier", allow_none: bool = False) -> str | None:
    """
    Sanitize and validate Slack IDs (team_id, channel_id, user_id).

    Slack IDs are uppercase alphanumeric strings; lowercase, hyphens and
    underscores are tolerated. MongoDB operators and object notation are rejected.

    Raises:
        ValueError: If identifier is invalid or contains dangerous characters
    """
    if identifier is None:
        if allow_none:
            return None
        raise ValueError(f"{name} cannot be None")

    if not isinstance(identifier, str):
        raise ValueError(f"{name} must be a string, got {type(identifier).__name__}")

    identifier = identifier.strip()

    if not identifier:
        raise ValueError(f"{name} cannot be empty")

    if re.search(r"\$[a-z]+|^\$|[{}]", identifier, re.IGNORECASE):
        raise ValueError(
            f"{name} contains invalid characters that could be used for injection: {identifier}"
        )

    if not re.match(r"^[A-Za-z0-9_-]+$", identifier):
        raise ValueError(
            f"{name} contains invalid characters. "
            f"Only alphanumeric characters, hyphens, and underscores are allowed: {identifier}"
        )

    MAX_ID_LENGTH = 256
    if len(identifier) > MAX_ID_LENGTH:
        raise ValueError(f"{name} is too long (max {MAX_ID_LENGTH} characters): {len(identifier)}")

    return identifier

