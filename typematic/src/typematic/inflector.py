from __future__ import annotations

from dataclasses import dataclass, field

import inflect
from typing_extensions import Protocol

from .utils import NamingRegistry


class Inflector(Protocol):
    """Word inflection service used to name the per-element accessors of to-many properties."""

    def singularize(self, plural_noun: str) -> str: ...


@dataclass
class InflectInflector:
    """
    Inflector backed by the inflect library. Camel case names are singularized on their last word,
    so 'contactPoints' becomes 'contactPoint'. Names that are not plural are returned unchanged.
    """

    engine: inflect.engine = field(default_factory=inflect.engine)

    def singularize(self, plural_noun: str) -> str:
        words = [w for w in NamingRegistry.to_snake_case(plural_noun).split("_") if w]
        if not words or not words[-1].isalpha():
            return plural_noun
        word = words[-1]
        singular = self.engine.singular_noun(word)
        # singular_noun also strips the s of singular words like 'address'
        if not singular or self.engine.plural_noun(singular) != word:
            return plural_noun
        start = plural_noun.lower().rfind(word)
        head, tail = plural_noun[:start], plural_noun[start + len(word) :]
        if plural_noun[start : start + 1].isupper():
            singular = singular[:1].upper() + singular[1:]
        return head + singular + tail
