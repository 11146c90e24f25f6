"""
Parsed view of a render surface snapshot shared by all strategies.
"""

from __future__ import annotations

from functools import cached_property

from bs4 import BeautifulSoup

PARSER = "html.parser"

# Elements whose contents never show up in the visible text of a page.
NON_VISIBLE_TAGS = ("script", "style", "noscript", "template")


class ParsedPage:
    """A BeautifulSoup document plus its visible text, computed once."""

    def __init__(self, html: str) -> None:
        self.soup = BeautifulSoup(html, PARSER)
        for tag_name in NON_VISIBLE_TAGS:
            for tag in self.soup.find_all(tag_name):
                tag.decompose()

    @cached_property
    def text(self) -> str:
        """Visible text, one line per block, blank lines dropped."""
        root = self.soup.body or self.soup
        lines = (" ".join(line.split()) for line in root.get_text("\n").splitlines())
        return "\n".join(line for line in lines if line)

    def has(self, selector: str) -> bool:
        return self.soup.select_one(selector) is not None
