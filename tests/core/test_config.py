"""Tests for LedgerConfig."""

import pytest
from pydantic import ValidationError

from core.config import LedgerConfig


def test_defaults():
    config = LedgerConfig()

    assert config.default_page_size == 10
    assert config.max_page_size == 100
    assert config.default_period == "30days"
    assert config.reporting_timezone == "Asia/Kolkata"
    assert config.currency == "INR"


def test_unknown_timezone_rejected():
    with pytest.raises(ValidationError):
        LedgerConfig(reporting_timezone="Mars/Olympus")


def test_unknown_default_period_rejected():
    with pytest.raises(ValidationError):
        LedgerConfig(default_period="2weeks")
