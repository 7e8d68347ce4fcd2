"""
Named extraction rules for the embed, rcp and prorcp pages.

DOM rules go through BeautifulSoup CSS selectors. The prorcp path lives inside
a <script> body, so that rule scans the raw page text with a regex instead.
"""
from __future__ import annotations
import re
from dataclasses import dataclass
from typing import Optional, Pattern, Union

from bs4 import BeautifulSoup

from .errors import ExtractionFailed


@dataclass(frozen=True)
class ExtractionRule:
    stage: str                            # reported in ExtractionFailed
    selector: Optional[str] = None        # CSS selector (DOM rule)
    attribute: Optional[str] = None       # attribute to read; text when None
    pattern: Optional[Pattern] = None     # raw-text regex, group 1 is the value

    def __post_init__(self):
        if (self.selector is None) == (self.pattern is None):
            raise ValueError("an extraction rule needs exactly one of selector or pattern")


RCP_IFRAME = ExtractionRule(stage="rcp-url", selector="iframe#player_iframe", attribute="src")
PRORCP_SCRIPT = ExtractionRule(stage="prorcp-url", pattern=re.compile(r"src:\s*'(/prorcp/[^']+)'"))
HIDDEN_TOKEN = ExtractionRule(stage="hidden-token", selector='div[style="display:none;"]')
HIDDEN_TOKEN_ID = ExtractionRule(stage="token-key", selector='div[style="display:none;"]', attribute="id")
SCRIPT_ASSET = ExtractionRule(stage="script-asset", selector='script[src*="/sV05kUlNvOdOxvtC/"]', attribute="src")


def parse_html(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "html.parser")


def extract(html: Union[str, BeautifulSoup], rule: ExtractionRule) -> str:
    """Return the single value `rule` points at, or raise ExtractionFailed."""
    if rule.pattern is not None:
        text = html if isinstance(html, str) else str(html)
        match = rule.pattern.search(text)
        if not match:
            raise ExtractionFailed(rule.stage, f"no match for {rule.pattern.pattern!r}")
        value = match.group(1)
    else:
        soup = html if isinstance(html, BeautifulSoup) else parse_html(html)
        element = soup.select_one(rule.selector)
        if element is None:
            raise ExtractionFailed(rule.stage, f"no element matches {rule.selector!r}")
        if rule.attribute:
            value = element.get(rule.attribute) or ""
            if isinstance(value, list):   # multi-valued attributes such as class
                value = " ".join(value)
        else:
            value = element.get_text()

    value = value.strip()
    if not value:
        raise ExtractionFailed(rule.stage, "value is empty")
    return value


def extract_optional(html: Union[str, BeautifulSoup], rule: ExtractionRule) -> Optional[str]:
    """Like extract(), but a missing value is None instead of an error."""
    try:
        return extract(html, rule)
    except ExtractionFailed:
        return None
