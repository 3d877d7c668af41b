"""Group versus per-commit decision for push notifications."""


def is_group(count: int, threshold: int) -> bool:
    """Return True when *count* commits should be announced as one group."""
    return count >= threshold
