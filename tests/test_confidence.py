"""
Tests for match confidence helpers.
"""

import pytest
from receipt.utils.confidence import (
    confidence_level_name,
    interpret_match,
    is_auto_linkable,
)


def test_auto_linkable_uses_threshold():
    """Test the auto-link cut-off."""
    assert is_auto_linkable(0.45, 0.45)
    assert not is_auto_linkable(0.44, 0.45)
    assert is_auto_linkable(0.3, 0.2)


def test_auto_linkable_defaults_to_config():
    """Test the configured threshold is used by default."""
    assert is_auto_linkable(1.0)
    assert not is_auto_linkable(0.0)


def test_confidence_level_name():
    """Test confidence level naming."""
    assert confidence_level_name(1.0) == "EXACT_CODE"
    assert confidence_level_name(0.9) == "EXACT_DESCRIPTION"
    assert confidence_level_name(0.85) == "PARTIAL_CODE"
    assert confidence_level_name(0.7) == "PARTIAL_DESCRIPTION"
    assert confidence_level_name(0.5) == "TOKEN_OVERLAP"
    assert confidence_level_name(0.0) == "NO_MATCH"


def test_interpret_match_above_threshold():
    """Test strong matches are described without a warning."""
    level, description = interpret_match(0.9, 0.45)
    assert level == "EXACT_DESCRIPTION"
    assert description == "Descriptions are identical"


def test_interpret_match_below_threshold():
    """Test weak matches ask for manual linking."""
    level, description = interpret_match(0.25, 0.45)
    assert level == "TOKEN_OVERLAP"
    assert description.endswith("requires manual linking")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
