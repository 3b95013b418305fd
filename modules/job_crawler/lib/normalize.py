"""
Text helpers shared by the listing and detail parsers.

  - clean():        whitespace collapse, idempotent
  - parse_salary(): "$162K - $215K / yr" -> SalaryInfo(min=162000, max=215000, period="yr")
  - parse_posted(): "Posted 8 days ago"  -> PostedInfo(relative="8 days ago")
  - strip_html():   markup fragment -> cleaned plain text
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup

from .models import PostedInfo, SalaryInfo

_WS_RE = re.compile(r"\s+")

_NUM = r"(\d[\d,]*(?:\.\d+)?)(?:\s?([km])\b)?"
SALARY_RE = re.compile(
    r"\$?\s*" + _NUM + r"\s*(?:-|–|—|to)\s*\$?\s*" + _NUM
    + r"(?:\s*(?:/|per)?\s*(yr|hr|year|hour|annually|monthly)\b)?",
    re.I,
)

POSTED_RE = re.compile(r"\b(\d+)\s+(minutes?|hours?|days?|weeks?|months?)\s+ago\b", re.I)

_MULTIPLIERS = {"k": 1_000, "m": 1_000_000}


def clean(text: str | None) -> str:
    if not text:
        return ""
    return _WS_RE.sub(" ", str(text)).strip()


def _amount(num: str, suffix: str | None) -> int | float:
    value = float(num.replace(",", ""))
    if suffix:
        value *= _MULTIPLIERS[suffix.lower()]
    return int(value) if value.is_integer() else value


def parse_salary(text: str | None) -> SalaryInfo | None:
    raw = clean(text)
    if not raw:
        return None
    m = SALARY_RE.search(raw)
    if not m:
        return SalaryInfo(raw=raw)
    lo_num, lo_suffix, hi_num, hi_suffix, period = m.groups()
    return SalaryInfo(
        raw=raw,
        min=_amount(lo_num, lo_suffix),
        max=_amount(hi_num, hi_suffix),
        period=period.lower() if period else None,
    )


def parse_posted(text: str | None) -> PostedInfo | None:
    raw = clean(text)
    if not raw:
        return None
    m = POSTED_RE.search(raw)
    if not m:
        return PostedInfo(raw=raw)
    return PostedInfo(raw=raw, relative=f"{m.group(1)} {m.group(2).lower()} ago")


def strip_html(markup: str | None) -> str:
    if not markup:
        return ""
    return clean(BeautifulSoup(markup, "html.parser").get_text(" "))
