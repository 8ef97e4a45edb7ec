"""
Owner name parsing for CSV imports.

County and list-broker exports put the whole owner in one column:
"SMITH PROPERTIES LLC", "John & Jane Smith", "J Robert Smith". These
heuristics split that into first/last names for the Owner record.
"""

from dataclasses import dataclass
from typing import List, Optional

JOINT_OWNER_SEPARATORS = ['&', 'and', 'AND', 'And']


@dataclass
class ParsedOwnerName:
    first_name: str
    last_name: str
    full_name: str
    is_llc: bool = False
    llc_name: Optional[str] = None


def _combine_joint_owners(first_part: str, second_part: str) -> ParsedOwnerName:
    words1 = first_part.split()
    words2 = second_part.split()
    full_name = f'{first_part} & {second_part}'

    if len(words1) == 1 and len(words2) == 1:
        return ParsedOwnerName(first_name=f'{words1[0]} & {words2[0]}', last_name='', full_name=full_name)

    if len(words1) == 1 and len(words2) == 2:
        return ParsedOwnerName(first_name=f'{words1[0]} & {words2[0]}', last_name=words2[1], full_name=full_name)

    if len(words1) == 2 and len(words2) == 1:
        return ParsedOwnerName(first_name=f'{words1[0]} & {words2[0]}', last_name=words1[1], full_name=full_name)

    if len(words1) == 2 and len(words2) == 2:
        return ParsedOwnerName(
            first_name=f'{words1[0]} & {words2[0]}',
            last_name=f'{words1[1]} & {words2[1]}',
            full_name=full_name
        )

    return ParsedOwnerName(first_name=first_part, last_name=second_part, full_name=full_name)


def _parse_single_owner(name: str, full_name: str) -> ParsedOwnerName:
    words = name.split()

    if not words:
        return ParsedOwnerName(first_name='', last_name='', full_name=full_name)

    if len(words) == 1:
        return ParsedOwnerName(first_name=words[0], last_name='', full_name=full_name)

    if len(words) == 2:
        return ParsedOwnerName(first_name=words[0], last_name=words[1], full_name=full_name)

    initials = [word for word in words if len(word) == 1]
    full_words = [word for word in words if len(word) > 1]
    if initials and full_words:
        return ParsedOwnerName(
            first_name=f'{initials[0]} {full_words[0]}',
            last_name=' '.join(full_words[1:]),
            full_name=full_name
        )

    return ParsedOwnerName(first_name=words[0], last_name=' '.join(words[1:]), full_name=full_name)


def _split_joint_owners(name: str) -> Optional[List[str]]:
    for separator in JOINT_OWNER_SEPARATORS:
        if separator in name:
            parts = [part.strip() for part in name.split(separator)]
            return [part for part in parts if part]
    return None


def parse_owner_name(full_name: Optional[str]) -> ParsedOwnerName:
    """
    Split a free-text owner name into first and last name.

    - Anything containing "llc" (any case) is a business: the whole string
      becomes first_name.
    - Joint owners are split on the first separator found among
      &, and, AND, And (substring match, so "Anderson" counts as "And").
    - Otherwise words are split on whitespace; a leading initial is kept
      with the first full word ("J Robert Smith" -> "J Robert" / "Smith").

    Never raises; degenerate input yields empty names.
    """
    name = (full_name or '').strip()

    if 'llc' in name.lower():
        return ParsedOwnerName(first_name=name, last_name='', full_name=name, is_llc=True, llc_name=name)

    parts = _split_joint_owners(name)
    if not parts:
        return _parse_single_owner(name, name)

    if len(parts) == 2:
        parsed = _combine_joint_owners(parts[0], parts[1])
        parsed.full_name = name
        return parsed

    return ParsedOwnerName(first_name=parts[0], last_name=' & '.join(parts[1:]), full_name=name)
