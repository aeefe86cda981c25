"""
Match confidence helpers.
Turn raw matcher scores into link decisions and readable levels.
"""

from typing import Tuple

from receipt.config import get_config


config = get_config()


def is_auto_linkable(score: float, threshold: float = None) -> bool:
    """Check whether a match score is high enough to link without asking."""
    if threshold is None:
        threshold = config.MANUAL_ITEM_MATCH_THRESHOLD
    return score >= threshold


def confidence_level_name(score: float) -> str:
    """
    Convert a match score to a readable level name.

    The bands follow the matcher rules: 1.0 is an exact code, 0.9 an exact
    description, 0.85 a partial code and 0.7 a partial description.
    """
    if score >= 1.0:
        return "EXACT_CODE"
    elif score >= 0.9:
        return "EXACT_DESCRIPTION"
    elif score >= 0.85:
        return "PARTIAL_CODE"
    elif score >= 0.7:
        return "PARTIAL_DESCRIPTION"
    elif score > 0.0:
        return "TOKEN_OVERLAP"
    else:
        return "NO_MATCH"


def interpret_match(score: float, threshold: float = None) -> Tuple[str, str]:
    """
    Get human-readable interpretation of a match score.

    Returns:
        (level_name, description)
    """
    levels = {
        "EXACT_CODE": "Product codes are identical",
        "EXACT_DESCRIPTION": "Descriptions are identical",
        "PARTIAL_CODE": "One product code contains the other",
        "PARTIAL_DESCRIPTION": "One description contains the other",
        "TOKEN_OVERLAP": "Descriptions share some words",
        "NO_MATCH": "Nothing in common",
    }

    level = confidence_level_name(score)
    description = levels.get(level, "Unknown match level")
    if not is_auto_linkable(score, threshold):
        description = f"{description}; requires manual linking"
    return level, description
