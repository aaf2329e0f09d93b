# -*- coding: utf-8 -*-
"""
Markup normalization pipeline: raw wikitext to clean plain text.

Steps run in a fixed order, each on the previous step's output:
1. Transclusion guards - drop <noinclude>, unwrap <includeonly>
2. Comments - drop <!-- ... -->
3. Magic words - drop __TOC__ and {{DISPLAYTITLE:...}}-style directives
4. Media and categories - drop [[File:...]], [[Image:...]], [[Category:...]]
5. Templates - bounded innermost-first resolution of {{...}}
6. Tables - flatten {| ... |} into lines
7. Links - [[target|label]] and [url label] to their visible text
8. Headers - == Title == onto its own line
9. Emphasis - strip '' and ''' markers
10. Tags - <br> to newline, strip all other tags
11. Lists - *, # to "- "; ; and : to plain indentation
12. Horizontal rules - drop ----
13. Entities - decode &amp; &#65; &#x41;
14. Whitespace - sweep stray delimiters, collapse blank runs, trim
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable

from .config import settings
from .entities import decode_entities
from .inline import InlineMarkupConverter
from .stripper import StructuralStripper
from .tables import TableFlattener
from .templates import TemplateResolver

logger = logging.getLogger(__name__)

# Characters that pair up into template/link delimiters ({{ }} [[ ]])
DELIMITER_CHARS = frozenset("{}[]")


def strip_residual_delimiters(text: str) -> str:
    """
    Remove every doubled {{ }} [[ ]] in a single pass.

    Removing a pair can bring two more halves together ("[{{[" -> "[["),
    so the output is built on a stack: a delimiter character equal to the
    one on top cancels it instead of being pushed.
    """
    out: list[str] = []
    for char in text:
        if char in DELIMITER_CHARS and out and out[-1] == char:
            out.pop()
        else:
            out.append(char)
    return "".join(out)


@dataclass
class NormalizationResult:
    """Result of normalizing one document."""

    text: str
    steps_applied: list[str] = field(default_factory=list)
    template_iterations: int = 0
    template_capped: bool = False


class MarkupNormalizer:
    """
    Converts wikitext into plain text.

    Never raises on malformed markup: constructs that cannot be converted
    are discarded, and a step that fails unexpectedly is skipped.
    """

    def __init__(self, max_template_iterations: int | None = None):
        if max_template_iterations is None:
            max_template_iterations = settings.TEMPLATE_MAX_ITERATIONS
        self.max_template_iterations = max_template_iterations
        self._stripper = StructuralStripper()
        self._templates = TemplateResolver(self.max_template_iterations)
        self._tables = TableFlattener()
        self._inline = InlineMarkupConverter()

    def normalize(self, raw: str | None) -> str:
        """Return the plain-text form of ``raw``."""
        return self.process(raw).text

    def process(self, raw: str | None) -> NormalizationResult:
        """Run every step and report which ran and whether templates hit the cap."""
        result = NormalizationResult(text="")
        text = raw or ""

        steps: list[tuple[str, Callable[[str], str]]] = [
            ("transclusion", self._stripper.strip_transclusion),
            ("comments", self._stripper.strip_comments),
            ("magic_words", self._stripper.strip_magic_words),
            ("media_and_categories", self._stripper.strip_media_and_categories),
            ("templates", lambda t: self._step_templates(t, result)),
            ("tables", self._tables.flatten),
            ("links", self._inline.convert_links),
            ("headers", self._inline.convert_headers),
            ("emphasis", self._inline.strip_emphasis),
            ("tags", self._inline.strip_tags),
            ("lists", self._inline.flatten_lists),
            ("horizontal_rules", self._inline.strip_horizontal_rules),
            ("entities", decode_entities),
            ("whitespace", self._step_whitespace),
        ]

        for name, step in steps:
            try:
                text = step(text)
            except Exception as e:
                logger.warning(f"Normalization step '{name}' failed: {e}")
                continue
            result.steps_applied.append(name)

        result.text = text
        return result

    def _step_templates(self, text: str, result: NormalizationResult) -> str:
        resolution = self._templates.resolve(text)
        result.template_iterations = resolution.iterations
        result.template_capped = resolution.capped
        return resolution.text

    @staticmethod
    def _step_whitespace(text: str) -> str:
        """
        Final cleanup.

        - Remove {{ }} [[ ]] left by malformed or capped input
        - Collapse spaces/tabs to one space, drop trailing line whitespace
        - Limit consecutive newlines to 2
        - Strip leading/trailing whitespace
        """
        text = strip_residual_delimiters(text)
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r" +\n", "\n", text)
        text = re.sub(r"\n{3,}", "\n\n", text)
        return text.strip()


# Global normalizer instance
markup_normalizer = MarkupNormalizer()


def normalize(raw: str | None) -> str:
    """Normalize wikitext with the default normalizer."""
    return markup_normalizer.normalize(raw)
