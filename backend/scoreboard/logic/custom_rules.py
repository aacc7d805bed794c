"""Custom letter rules: single letters that stand in for score values.

A game may define rules like ``X = 50`` so a player can type ``x`` into a
score cell and the board shows ``X`` wherever 50 was scored.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict, TypeAdapter, ValidationError, field_validator

from scoreboard.logic.exceptions import InvalidCustomRulesError, InvalidScoreInputError

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = structlog.get_logger()

_LETTER_PATTERN = re.compile(r"^[A-Z]$")


class CustomRule(BaseModel):
    model_config = ConfigDict(frozen=True)

    letter: str
    value: int

    @field_validator("letter")
    @classmethod
    def _upper_letter(cls, v: str) -> str:
        return v.strip().upper()


_RULE_LIST = TypeAdapter(list[CustomRule])


def rules_from_json(raw: str | None) -> list[CustomRule]:
    """Decode stored rules. Blank or garbled input yields no rules."""
    if not raw:
        return []
    try:
        return _RULE_LIST.validate_json(raw)
    except ValidationError:
        logger.warning("malformed custom rules ignored")
        return []


def rules_to_json(rules: Sequence[CustomRule]) -> str:
    return json.dumps([rule.model_dump() for rule in rules])


def validate_rules(rules: Sequence[CustomRule]) -> None:
    """Raise InvalidCustomRulesError unless letters are unique single A-Z and values are unique."""
    letters = [rule.letter for rule in rules]
    if len(letters) != len(set(letters)):
        raise InvalidCustomRulesError("duplicate letters found in custom rules")
    for letter in letters:
        if not _LETTER_PATTERN.match(letter):
            raise InvalidCustomRulesError(f"custom rule letter must be a single letter A-Z, got {letter!r}")
    values = [rule.value for rule in rules]
    if len(values) != len(set(values)):
        raise InvalidCustomRulesError("duplicate values found in custom rules")


def parse_score_input(text: str, rules: Sequence[CustomRule]) -> int | None:
    """Turn typed cell input into a score.

    A rule letter maps to its value, anything else must be an integer.
    Blank input means the cell is cleared and returns None.
    """
    token = text.strip().upper()
    if not token:
        return None
    for rule in rules:
        if rule.letter == token:
            return rule.value
    try:
        return int(token)
    except ValueError:
        raise InvalidScoreInputError(f"not a score or rule letter: {text!r}") from None


def score_display(value: int | None, rules: Sequence[CustomRule]) -> str | None:
    """Render a cell value, substituting a rule letter when one matches. Empty cells render as None."""
    if value is None:
        return None
    for rule in rules:
        if rule.value == value:
            return rule.letter
    return str(value)
