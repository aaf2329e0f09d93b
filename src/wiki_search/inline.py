# -*- coding: utf-8 -*-
"""
Inline wikitext conversion: links, headers, emphasis, tags, lists and rules.
"""
import re


class InlineMarkupConverter:
    """Rewrites inline wikitext into its plain-text equivalent."""

    def __init__(self):
        # [[target|label]] and [[target]]
        self._piped_link = re.compile(r"\[\[([^\]|]+)\|([^\]]+)\]\]")
        self._plain_link = re.compile(r"\[\[\s*:?([^\]]+)\]\]")
        # [https://host/path label] and [https://host/path]
        self._labelled_external = re.compile(r"\[(?:https?:)?//[^\s\]]+[ \t]+([^\]]+)\]")
        self._bare_external = re.compile(r"\[(?:https?:)?//([^\s\]]+)[ \t]*\]")

        self._header = re.compile(r"^(={1,6})[ \t]*(.+?)[ \t]*\1[ \t]*$", re.MULTILINE)

        self._bold_italic = re.compile(r"'{5}(.+?)'{5}")
        self._bold = re.compile(r"'{3}(.+?)'{3}")
        self._italic = re.compile(r"'{2}(.+?)'{2}")
        self._stray_quotes = re.compile(r"'{2,}")

        self._line_break = re.compile(r"<br\s*/?>", re.IGNORECASE)
        self._tag = re.compile(r"</?[A-Za-z][A-Za-z0-9]*(?:\s[^<>]*)?/?>")

        self._list_item = re.compile(r"^[*#]+[ \t]*", re.MULTILINE)
        self._definition_term = re.compile(r"^;+[ \t]*", re.MULTILINE)
        self._definition_body = re.compile(r"^:+[ \t]*", re.MULTILINE)

        self._horizontal_rule = re.compile(r"^-{4,}[ \t]*$", re.MULTILINE)

    def convert_links(self, text: str) -> str:
        text = self._piped_link.sub(r"\2", text)
        text = self._plain_link.sub(r"\1", text)
        text = self._labelled_external.sub(r"\1", text)
        return self._bare_external.sub(r"\1", text)

    def convert_headers(self, text: str) -> str:
        """Put ``== Title ==`` text on its own line."""
        return self._header.sub(lambda m: f"\n{m.group(2)}\n", text)

    def strip_emphasis(self, text: str) -> str:
        text = self._bold_italic.sub(r"\1", text)
        text = self._bold.sub(r"\1", text)
        text = self._italic.sub(r"\1", text)
        return self._stray_quotes.sub("", text)

    def strip_tags(self, text: str) -> str:
        """<br> becomes a newline; any other tag is dropped, its text kept."""
        text = self._line_break.sub("\n", text)
        return self._tag.sub("", text)

    def flatten_lists(self, text: str) -> str:
        text = self._list_item.sub("- ", text)
        text = self._definition_term.sub("", text)
        return self._definition_body.sub("  ", text)

    def strip_horizontal_rules(self, text: str) -> str:
        return self._horizontal_rule.sub("", text)
