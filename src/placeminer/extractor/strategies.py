"""
Typed field extraction strategies and first-match-wins fallback chains.

Each strategy inspects a ParsedPage and returns ``Some(value)`` as a
non-empty string or ``None``. A FieldChain tries its strategies in declared
priority order and stops at the first value.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, List, NamedTuple, Optional, Sequence, Tuple
from urllib.parse import unquote, urlparse

from .page import ParsedPage
from .protocols import FieldStrategy

# Digit-dense token: optional leading "+" or "(", separators "-", space, parentheses, ".".
PHONE_PATTERN = re.compile(r"\+?\(?\d[\d\- ().]{5,}\d")
EMAIL_PATTERN = re.compile(r"[A-Z0-9._%+-]+@[A-Z0-9.-]+\.[A-Z]{2,}", re.IGNORECASE)
CALL_LABEL_PATTERN = re.compile(r"\b(?:call|phone)\b\s*:?", re.IGNORECASE)
_DIGIT = re.compile(r"\d")


def _element_text(element) -> str:
    return " ".join(element.get_text(" ").split())


def scan_phone_numbers(text: str, min_digits: int = 7) -> List[str]:
    """Distinct phone-like tokens in order of first appearance."""
    seen: List[str] = []
    for match in PHONE_PATTERN.finditer(text):
        candidate = match.group(0).strip()
        if len(_DIGIT.findall(candidate)) < min_digits:
            continue
        if candidate not in seen:
            seen.append(candidate)
    return seen


def is_external_link(href: str, excluded_domains: Sequence[str], surface_path_prefix: str) -> bool:
    """True when href points outside the rendering platform and its query surface."""
    try:
        parsed = urlparse(href.strip())
    except ValueError:
        return False
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    host = (parsed.hostname or "").lower()
    for domain in excluded_domains:
        if host == domain or host.endswith("." + domain):
            return False
    if surface_path_prefix and parsed.path.startswith(surface_path_prefix):
        return False
    return True


# ============================================================================
# Strategies
# ============================================================================


@dataclass(frozen=True)
class SelectorText:
    """Visible text of the first element matching a CSS selector."""

    selector: str

    @property
    def name(self) -> str:
        return f"text:{self.selector}"

    def find(self, page: ParsedPage) -> Optional[str]:
        element = page.soup.select_one(self.selector)
        if element is None:
            return None
        return _element_text(element) or None


@dataclass(frozen=True)
class CallAffordance:
    """A "call" button or link: tel: href, then aria-label, then visible text."""

    selector: str

    @property
    def name(self) -> str:
        return f"call:{self.selector}"

    def find(self, page: ParsedPage) -> Optional[str]:
        element = page.soup.select_one(self.selector)
        if element is None:
            return None

        href = element.get("href") or ""
        if element.name == "a" and href.lower().startswith("tel:"):
            number = unquote(href[4:]).strip()
            if number:
                return number

        label = element.get("aria-label") or ""
        if label:
            label = CALL_LABEL_PATTERN.sub("", label).strip()
            if _DIGIT.search(label):
                return label

        text = _element_text(element)
        if _DIGIT.search(text):
            return text
        return None


@dataclass(frozen=True)
class PhoneTextScan:
    """The n-th distinct phone-like token of the page text."""

    index: int = 0
    min_digits: int = 7

    @property
    def name(self) -> str:
        return f"phone_scan[{self.index}]"

    def find(self, page: ParsedPage) -> Optional[str]:
        numbers = scan_phone_numbers(page.text, self.min_digits)
        if len(numbers) > self.index:
            return numbers[self.index]
        return None


@dataclass(frozen=True)
class ExternalLink:
    """First link matching a selector whose target is not the platform itself."""

    selector: str
    excluded_domains: Tuple[str, ...] = ("google.com",)
    surface_path_prefix: str = "/maps"

    @property
    def name(self) -> str:
        return f"link:{self.selector}"

    def find(self, page: ParsedPage) -> Optional[str]:
        for element in page.soup.select(self.selector):
            href = (element.get("href") or "").strip()
            if href and is_external_link(href, self.excluded_domains, self.surface_path_prefix):
                return href
        return None


@dataclass(frozen=True)
class MailtoLink:
    """Address of the first mailto: link."""

    selector: str = 'a[href^="mailto:"]'

    @property
    def name(self) -> str:
        return "mailto"

    def find(self, page: ParsedPage) -> Optional[str]:
        element = page.soup.select_one(self.selector)
        if element is None:
            return None
        address = unquote((element.get("href") or "")[len("mailto:") :]).split("?", 1)[0].strip()
        return address or None


@dataclass(frozen=True)
class EmailTextScan:
    """First e-mail address inside a bounded description region."""

    region_selector: str

    @property
    def name(self) -> str:
        return f"email_scan:{self.region_selector}"

    def find(self, page: ParsedPage) -> Optional[str]:
        region = page.soup.select_one(self.region_selector)
        if region is None:
            return None
        match = EMAIL_PATTERN.search(region.get_text(" "))
        return match.group(0) if match else None


# ============================================================================
# Chains
# ============================================================================


class ChainMatch(NamedTuple):
    value: str
    strategy: str


@dataclass(frozen=True)
class FieldChain:
    """Ordered fallback chain for one field. The first strategy with a value wins."""

    field: str
    strategies: Tuple[FieldStrategy, ...]

    def resolve(self, page: ParsedPage) -> Optional[ChainMatch]:
        for strategy in self.strategies:
            value = strategy.find(page)
            if value:
                return ChainMatch(value, strategy.name)
        return None


def text_chain(field: str, selectors: Iterable[str]) -> FieldChain:
    return FieldChain(field, tuple(SelectorText(s) for s in selectors))
