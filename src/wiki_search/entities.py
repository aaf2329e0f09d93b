# -*- coding: utf-8 -*-
"""
Character reference decoding for wikitext.
"""
import re
from html import unescape

# Non-breaking spaces decode to U+00A0; plain text wants ordinary spaces
_NBSP = re.compile("[\u00a0\u202f\u2007]")


def decode_entities(text: str) -> str:
    """
    Decode named (&amp;), decimal (&#65;) and hex (&#x41;) references.

    Invalid code points decode to U+FFFD instead of raising.
    """
    if "&" not in text:
        return text
    return _NBSP.sub(" ", unescape(text))
