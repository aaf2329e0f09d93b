# -*- coding: utf-8 -*-
"""
Pre-pass that removes wikitext constructs with no reader-visible content.

Runs on raw markup before templates are resolved: transclusion guards,
comments, magic words, display directives, media and category links.
"""
import re

# Behaviour switches written as __WORD__
MAGIC_WORDS = [
    "TOC",
    "NOTOC",
    "FORCETOC",
    "NOEDITSECTION",
    "NEWSECTIONLINK",
    "NONEWSECTIONLINK",
    "NOGALLERY",
    "HIDDENCAT",
    "INDEX",
    "NOINDEX",
    "STATICREDIRECT",
]

# Directives written as {{NAME:value}}
DIRECTIVES = ["DISPLAYTITLE", "DEFAULTSORT", "DEFAULTSORTKEY", "DEFAULTCATEGORYSORT"]

# Namespaces of links that embed media rather than pointing at a page
MEDIA_NAMESPACES = ["File", "Image", "Media"]


class StructuralStripper:
    """Removes non-content structure from raw wikitext."""

    def __init__(self):
        self._noinclude = re.compile(r"<noinclude\b.*?</noinclude\s*>", re.IGNORECASE | re.DOTALL)
        self._includeonly = re.compile(r"</?includeonly\s*/?>", re.IGNORECASE)
        self._comment = re.compile(r"<!--.*?-->", re.DOTALL)
        self._magic = re.compile(r"__(?:" + "|".join(MAGIC_WORDS) + r")__")
        self._directive = re.compile(
            r"\{\{\s*(?:" + "|".join(DIRECTIVES) + r")\s*:[^}]*\}\}", re.IGNORECASE
        )
        # Captions may hold one level of [[links]]
        self._media = re.compile(
            r"\[\[\s*:?\s*(?:" + "|".join(MEDIA_NAMESPACES) + r")\s*:"
            r"(?:[^\[\]]|\[\[[^\[\]]*\]\]|\[[^\[\]]*\])*\]\]",
            re.IGNORECASE,
        )
        self._category = re.compile(r"\[\[\s*Category\s*:[^\]]*\]\]", re.IGNORECASE)

    def strip_transclusion(self, text: str) -> str:
        """Drop <noinclude> regions and unwrap <includeonly> ones."""
        text = self._noinclude.sub("", text)
        return self._includeonly.sub("", text)

    def strip_comments(self, text: str) -> str:
        return self._comment.sub("", text)

    def strip_magic_words(self, text: str) -> str:
        """Drop __TOC__-style switches and {{DISPLAYTITLE:...}}-style directives."""
        text = self._magic.sub("", text)
        return self._directive.sub("", text)

    def strip_media_and_categories(self, text: str) -> str:
        """
        Drop [[File:...]] / [[Image:...]] embeds and [[Category:...]] tags.

        Categories reach the store as structured metadata, so the in-body
        tags are redundant.
        """
        text = self._media.sub("", text)
        return self._category.sub("", text)
