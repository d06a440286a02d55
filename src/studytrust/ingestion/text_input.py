"""
Text Adapter

Pasted text is used as-is apart from stripping any HTML markup that came
along with it.
"""

import re

from bs4 import BeautifulSoup

from studytrust.core.schemas import ExtractedContent

MARKUP = re.compile(r"<[a-zA-Z/!][^>]*>|&[a-zA-Z]+;|&#\d+;")
NON_TEXT_TAGS = ["script", "style", "noscript"]


def strip_markup(text: str) -> str:
    """Drop tags, script/style bodies and entities, keeping the text content."""
    if not MARKUP.search(text):
        return text
    soup = BeautifulSoup(text, "lxml")
    for tag in soup(NON_TEXT_TAGS):
        tag.decompose()
    return soup.get_text()


class TextInput:
    """Adapter for pasted study text."""

    async def normalize(self, text: str) -> ExtractedContent:
        # Section splitting is left to the provider for pasted text
        return ExtractedContent(text=strip_markup(text).strip())
