"""Ingredient statement parsing."""

import re

from food_enrichment.domain.enrichment import Ingredient

MAX_INGREDIENTS = 60

_INNER_ASIDE = re.compile(r"\([^()]*\)|\[[^\[\]]*\]")
_SEPARATORS = re.compile(r"[,;]+")
_STRAY_BRACKETS = re.compile(r"[()\[\]]")


def strip_asides(text: str) -> str:
    """Remove parenthetical and bracketed annotations, innermost first."""
    previous = None
    while previous != text:
        previous = text
        text = _INNER_ASIDE.sub("", text)
    return _STRAY_BRACKETS.sub("", text)


def parse_ingredient_statement(raw: str | None) -> list[Ingredient]:
    """Split a label's ingredient statement into at most 60 ingredients."""
    if not raw:
        return []
    names = (part.strip(" .*\t\n") for part in _SEPARATORS.split(strip_asides(raw)))
    return [Ingredient(name=name) for name in names if name][:MAX_INGREDIENTS]
