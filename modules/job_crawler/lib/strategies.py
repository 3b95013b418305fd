"""
Declarative field extraction.

Each field is described by an ordered tuple of strategies. `first_value()` runs
them in order against a BeautifulSoup node and returns the first non-empty
result, so every strategy can be tested on its own and selector lists stay
plain data.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from bs4 import Tag

from .normalize import clean


class Strategy:
    """One way of pulling a string out of a node. Returns None on a miss."""

    def extract(self, node: Tag) -> str | None:
        raise NotImplementedError


@dataclass(frozen=True)
class Css(Strategy):
    """Text of the first element matching `selector`."""

    selector: str

    def extract(self, node: Tag) -> str | None:
        el = node.select_one(self.selector)
        if el is None:
            return None
        return clean(el.get_text(" ")) or None


@dataclass(frozen=True)
class CssAttr(Strategy):
    """An attribute of the first element matching `selector` (e.g. meta content)."""

    selector: str
    attr: str

    def extract(self, node: Tag) -> str | None:
        el = node.select_one(self.selector)
        if el is None:
            return None
        value = el.get(self.attr)
        if isinstance(value, list):
            value = " ".join(value)
        return clean(value) or None


@dataclass(frozen=True)
class Pattern(Strategy):
    """First regex match over the node's text (or over a pre-built text buffer)."""

    regex: re.Pattern[str]
    group: int = 0

    def extract(self, node: Tag) -> str | None:
        return self.search(clean(node.get_text(" ")))

    def search(self, text: str) -> str | None:
        m = self.regex.search(text or "")
        if not m:
            return None
        return clean(m.group(self.group)) or None


def first_value(node: Tag, strategies: Iterable[Strategy]) -> str | None:
    for strategy in strategies:
        value = strategy.extract(node)
        if value:
            return value
    return None


def first_element(node: Tag, selectors: Iterable[str]) -> Tag | None:
    """First element matched by the first selector that matches anything."""
    for selector in selectors:
        el = node.select_one(selector)
        if el is not None:
            return el
    return None
