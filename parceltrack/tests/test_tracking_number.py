"""
Unit tests for tracking number generation.
"""

import re
import pytest

from parceltrack.app.services import tracking
from parceltrack.app.services.tracking import (
    SUFFIX_ALPHABET, format_tracking_number, generate_tracking_number, random_suffix
)

TRACKING_PATTERN = re.compile(r"^PCL\d+[A-Z0-9]{5}$")


def test_format_uses_prefix_timestamp_and_suffix():
    assert format_tracking_number(timestamp=1717171717, suffix="AB12C") == "PCL1717171717AB12C"


def test_random_suffix_alphabet_and_length():
    suffix = random_suffix()
    assert len(suffix) == 5
    assert all(ch in SUFFIX_ALPHABET for ch in suffix)
    assert len(random_suffix(8)) == 8


def test_formatted_number_matches_pattern():
    assert TRACKING_PATTERN.match(format_tracking_number())


async def test_generate_returns_unused_number(db_session):
    number = await generate_tracking_number(db_session)
    assert TRACKING_PATTERN.match(number)


async def test_generate_rerolls_until_unused(db_session, monkeypatch):
    candidates = iter(["PCL1AAAAA", "PCL1BBBBB", "PCL1CCCCC"])
    monkeypatch.setattr(tracking, "format_tracking_number", lambda: next(candidates))
    taken = {"PCL1AAAAA", "PCL1BBBBB"}
    checked = []

    async def exists_check(db, candidate):
        checked.append(candidate)
        return candidate in taken

    number = await generate_tracking_number(db_session, exists_check=exists_check)

    assert number == "PCL1CCCCC"
    assert checked == ["PCL1AAAAA", "PCL1BBBBB", "PCL1CCCCC"]


async def test_generated_numbers_are_distinct(db_session):
    numbers = {await generate_tracking_number(db_session) for _ in range(50)}
    assert len(numbers) == 50
