from __future__ import annotations

import html
import re
from typing import Any, List


def strip_all_tags(text: str | None, remove_breaks: bool = True) -> str:
    """Strip HTML from product body/excerpt text.

    - Drop <script> and <style> elements along with their contents
    - Strip remaining HTML tags while keeping inner text
    - Decode HTML entities (e.g. &amp; -> &)
    - With ``remove_breaks``, collapse line breaks, tabs and runs of spaces
    """

    if not text:
        return ""

    text = re.sub(r"<(script|style)[^>]*?>.*?</\1>", "", text, flags=re.IGNORECASE | re.DOTALL)

    # Remove HTML tags (e.g. <a href="...">text</a> -> text)
    text = re.sub(r"<[^>]+>", "", text)

    text = html.unescape(text)

    if remove_breaks:
        text = re.sub(r"[\r\n\t ]+", " ", text)

    return text.strip()


def clean_term_names(terms: Any) -> List[str]:
    """Clean category/tag names.

    Accepts a list of names (or a single name), strips whitespace and drops
    empties while keeping the catalog's order.
    """

    if not terms:
        return []

    if isinstance(terms, str):
        terms = [terms]

    names = [str(t).strip() for t in terms if t is not None]
    return [n for n in names if n]
