# -*- coding: utf-8 -*-
"""
Template ({{...}}) resolution.

Templates are resolved innermost-first: every pass rewrites the regions
whose body holds no other {{ or }}, then the whole string is scanned again.
Passes stop at a fixed point or after ``max_iterations``; whatever is still
unresolved at the cap is left in place for later stages.
"""
import logging
import re
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 50

# Innermost template: body without nested {{ or }}
INNERMOST_TEMPLATE = re.compile(r"\{\{((?:(?!\{\{|\}\}).)*)\}\}", re.DOTALL)

# Infobox parameters that only carry layout or media
INFOBOX_DENIED_KEYS = frozenset(
    {
        "image",
        "icon",
        "caption",
        "imagewidth",
        "imageheight",
        "style",
        "class",
        "colspan",
        "rowspan",
    }
)

_INFOBOX_PARAM = re.compile(r"^\s*(\w[\w\s-]*?)\s*=\s*(.+?)\s*$", re.DOTALL)
_KEY_SEPARATORS = re.compile(r"[\s_-]+")
_LINK_OR_PIPE = re.compile(r"\[\[|\]\]|\|")


def split_params(body: str) -> list[str]:
    """Split a template body on pipes that are not inside [[...]] links."""
    parts = []
    depth = 0
    start = 0
    for match in _LINK_OR_PIPE.finditer(body):
        token = match.group(0)
        if token == "[[":
            depth += 1
        elif token == "]]":
            depth = max(depth - 1, 0)
        elif depth == 0:
            parts.append(body[start:match.start()])
            start = match.end()
    parts.append(body[start:])
    return parts


def _second(params: list[str]) -> str:
    return params[0].strip() if params else ""


def _extract_infobox(params: list[str]) -> str:
    lines = []
    for param in params:
        match = _INFOBOX_PARAM.match(param)
        if not match:
            continue
        key = match.group(1).strip()
        value = match.group(2).strip()
        if _KEY_SEPARATORS.sub("", key).lower() in INFOBOX_DENIED_KEYS:
            continue
        if value:
            lines.append(f"{key}: {value}")
    return "\n".join(lines) + "\n" if lines else ""


def _extract_quote(params: list[str]) -> str:
    text = _second(params)
    return f'"{text}"' if text else ""


def _extract_color(params: list[str]) -> str:
    # {{color|<colour>|<text>}}: the colour value is discarded
    return params[1].strip() if len(params) >= 2 else ""


def _extract_see_also(params: list[str]) -> str:
    target = _second(params)
    return f"(See: {target})" if target else ""


def _extract_nihongo(params: list[str]) -> str:
    return _second(params)


def _discard(params: list[str]) -> str:
    return ""


class TemplateKind(Enum):
    """Template families with dedicated extraction, checked in this order."""

    INFOBOX = "infobox"
    QUOTE = "quote"
    COLOR = "color"
    SEE_ALSO = "see_also"
    NIHONGO = "nihongo"
    UNKNOWN = "unknown"

    @classmethod
    def from_name(cls, name: str) -> "TemplateKind":
        """Classify a template by its (already normalized) name."""
        if name.startswith("infobox"):
            return cls.INFOBOX
        return _NAMED_KINDS.get(name, cls.UNKNOWN)

    def extract(self, params: list[str]) -> str:
        """Render the template's parameters (name excluded) as plain text."""
        return _EXTRACTORS[self](params)


_NAMED_KINDS = {
    "quote": TemplateKind.QUOTE,
    "cquote": TemplateKind.QUOTE,
    "color": TemplateKind.COLOR,
    "main": TemplateKind.SEE_ALSO,
    "see also": TemplateKind.SEE_ALSO,
    "nihongo": TemplateKind.NIHONGO,
}

_EXTRACTORS = {
    TemplateKind.INFOBOX: _extract_infobox,
    TemplateKind.QUOTE: _extract_quote,
    TemplateKind.COLOR: _extract_color,
    TemplateKind.SEE_ALSO: _extract_see_also,
    TemplateKind.NIHONGO: _extract_nihongo,
    TemplateKind.UNKNOWN: _discard,
}


def normalize_template_name(raw: str) -> str:
    """Lowercase, trim, turn underscores into spaces and drop a Template: prefix."""
    name = " ".join(raw.replace("_", " ").split()).lower()
    if name.startswith("template:"):
        name = name[len("template:"):].strip()
    return name


def resolve_template(body: str) -> str:
    """Resolve a single innermost template body (text between the braces)."""
    parts = split_params(body)
    kind = TemplateKind.from_name(normalize_template_name(parts[0]))
    return kind.extract(parts[1:])


@dataclass
class ResolutionResult:
    """Outcome of a template resolution run."""

    text: str
    iterations: int = 0
    capped: bool = False


class TemplateResolver:
    """Bounded fixed-point rewriter for nested templates."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS):
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.max_iterations = max_iterations

    def resolve(self, text: str) -> ResolutionResult:
        iterations = 0
        while iterations < self.max_iterations:
            rewritten = INNERMOST_TEMPLATE.sub(lambda m: resolve_template(m.group(1)), text)
            if rewritten == text:
                return ResolutionResult(text=text, iterations=iterations)
            text = rewritten
            iterations += 1

        capped = INNERMOST_TEMPLATE.search(text) is not None
        if capped:
            logger.warning(
                "Template resolution stopped at iteration cap",
                extra={"max_iterations": self.max_iterations},
            )
        return ResolutionResult(text=text, iterations=iterations, capped=capped)
