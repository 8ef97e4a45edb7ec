"""
Normalization and token-overlap helpers shared by the CSV, owner and
property matching code.
"""

import re
from typing import List, Optional

_NON_DIGITS = re.compile(r'\D')
_WHITESPACE = re.compile(r'\s+')
_NON_WORD = re.compile(r'[^\w\s]')


def normalize_phone(phone: Optional[str]) -> str:
    """
    Reduce a phone number to at most its last 10 digits.

    Non-digits are removed, then one leading "1" is dropped, then the last
    10 characters are kept. Extensions therefore eat into the number:
    '206-555-0101 ext 123' becomes '5550101123'.
    """
    if not phone:
        return ''
    digits = _NON_DIGITS.sub('', phone)
    if digits.startswith('1'):
        digits = digits[1:]
    return digits[-10:]


def normalize_name(name: Optional[str]) -> str:
    """
    Lowercase, trim and collapse whitespace, then strip punctuation.

    Whitespace is not collapsed again after punctuation is removed, so
    'John & Jane' becomes 'john  jane' (two spaces).
    """
    if not name:
        return ''
    cleaned = _WHITESPACE.sub(' ', name.lower().strip())
    return _NON_WORD.sub('', cleaned)


def token_overlap(words1: List[str], words2: List[str]) -> float:
    """
    Share of tokens in common relative to the longer token list.

    Every occurrence in words1 that appears anywhere in words2 counts, so
    repeated tokens are counted once per occurrence on the left side.
    """
    longest = max(len(words1), len(words2))
    if longest == 0:
        return 1.0
    lookup = set(words2)
    common = sum(1 for word in words1 if word in lookup)
    return common / longest
