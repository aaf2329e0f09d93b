# -*- coding: utf-8 -*-
"""
Tests for the markup normalization pipeline.
"""
import logging
import time

import pytest

from wiki_search.pipeline import (
    MarkupNormalizer,
    NormalizationResult,
    normalize,
    strip_residual_delimiters,
)


class TestNormalizationResult:
    """Tests for NormalizationResult dataclass."""

    def test_default_values(self):
        """Should have correct default values."""
        result = NormalizationResult(text="plain")

        assert result.text == "plain"
        assert result.steps_applied == []
        assert result.template_iterations == 0
        assert result.template_capped is False


class TestLinks:
    def test_piped_link_keeps_label(self):
        assert normalize("[[Fishing Rod|rod]]") == "rod"

    def test_plain_link_keeps_target(self):
        assert normalize("[[Fishing]]") == "Fishing"

    def test_multiple_links(self):
        assert normalize("Use [[Fishing Rod|rod]] at [[Lake]]") == "Use rod at Lake"

    def test_external_link_with_label(self):
        assert normalize("[https://example.com Example Site]") == "Example Site"

    def test_bare_external_link(self):
        assert normalize("[https://example.com/page]") == "example.com/page"


class TestHeadersAndEmphasis:
    @pytest.mark.parametrize(
        "markup, expected",
        [
            ("== Getting Started ==", "Getting Started"),
            ("=== Tips and Tricks ===", "Tips and Tricks"),
            ("==== Substep ====", "Substep"),
        ],
    )
    def test_headers(self, markup, expected):
        assert normalize(markup) == expected

    def test_header_on_its_own_line(self):
        assert normalize("intro\n== Section ==\nbody") == "intro\n\nSection\n\nbody"

    @pytest.mark.parametrize(
        "markup, expected",
        [
            ("'''bold text'''", "bold text"),
            ("''italic text''", "italic text"),
            ("'''''bold italic'''''", "bold italic"),
        ],
    )
    def test_emphasis(self, markup, expected):
        assert normalize(markup) == expected

    def test_apostrophes_in_words_kept(self):
        assert normalize("The player's ''car''") == "The player's car"


class TestMediaAndCategories:
    def test_file_removed(self):
        assert normalize("[[File:Screenshot.png|thumb|A screenshot]]") == ""

    def test_image_removed(self):
        assert normalize("[[Image:Map.jpg]]") == ""

    def test_surrounding_text_preserved(self):
        assert normalize("Before [[File:Pic.png|200px]] after") == "Before after"

    def test_caption_with_link_removed(self):
        assert normalize("A [[File:Pic.png|thumb|The [[Lake]] at dawn]] B") == "A B"

    def test_categories_removed(self):
        assert normalize("[[Category:Food]]") == ""
        assert normalize("[[Category:Food]]\n[[Category:Items]]") == ""


class TestTemplates:
    def test_unknown_template_removed(self):
        assert normalize("{{stub}}") == ""

    def test_nested_templates(self):
        assert normalize("{{outer|{{inner}}}}") == ""

    def test_quote(self):
        assert normalize("{{quote|Hello world}}") == '"Hello world"'

    def test_see_also(self):
        assert normalize("{{main|Fishing}}") == "(See: Fishing)"

    def test_color(self):
        assert normalize("{{color|red|important text}}") == "important text"

    def test_nihongo(self):
        assert normalize("{{nihongo|Sasquatch}}") == "Sasquatch"

    def test_infobox(self):
        result = normalize("{{Infobox character|name = Sasquatch|type = Player}}")
        assert result == "name: Sasquatch\ntype: Player"

    def test_infobox_skips_image_and_caption(self):
        result = normalize("{{Infobox item|name = Apple|image = apple.png|caption = An apple}}")
        assert "name: Apple" in result
        assert "image" not in result
        assert "caption" not in result

    def test_link_inside_template_parameter(self):
        assert normalize("{{quote|Go to the [[Lake|lake]]}}") == '"Go to the lake"'

    def test_display_title_removed(self):
        assert normalize("{{DISPLAYTITLE:Custom Title}}") == ""


class TestHtml:
    def test_br_to_newline(self):
        assert "Line one\nLine two" in normalize("Line one<br/>Line two")
        assert "A\nB" in normalize("A<br />B")

    def test_tags_stripped(self):
        assert normalize("<div>content</div>") == "content"
        assert normalize('<span style="color:red">warning</span>') == "warning"

    def test_comments_removed(self):
        assert normalize("visible <!-- hidden --> text") == "visible text"
        assert normalize("before\n<!-- multi\nline\ncomment -->\nafter") == "before\n\nafter"

    def test_comment_hides_markup(self):
        assert normalize("a <!-- [[Category:Hidden]] {{stub}} --> b") == "a b"

    def test_noinclude_removed(self):
        assert normalize("Keep <noinclude>Remove this</noinclude> this") == "Keep this"

    def test_includeonly_unwrapped(self):
        assert normalize("A <includeonly>B</includeonly> C") == "A B C"


class TestEntities:
    @pytest.mark.parametrize(
        "markup, expected",
        [
            ("Tom &amp; Jerry", "Tom & Jerry"),
            ("&lt;tag&gt;", "<tag>"),
            ("word&nbsp;word", "word word"),
            ("&#65;&#66;&#67;", "ABC"),
            ("&#x41;&#x42;&#x43;", "ABC"),
            ("a&ndash;b&mdash;c", "a–b—c"),
            ("&quot;quoted&quot; &apos;x&apos;", "\"quoted\" 'x'"),
        ],
    )
    def test_decoding(self, markup, expected):
        assert normalize(markup) == expected

    def test_unknown_entity_left_alone(self):
        assert normalize("&bogus; text") == "&bogus; text"

    def test_entities_decoded_once(self):
        assert normalize("5 &amp;lt; 6") == "5 &lt; 6"


class TestListsAndRules:
    def test_bullets(self):
        assert normalize("* Item one\n* Item two") == "- Item one\n- Item two"

    def test_nested_bullets(self):
        assert normalize("* Item\n** Sub-item") == "- Item\n- Sub-item"

    def test_numbered(self):
        assert normalize("# First\n# Second") == "- First\n- Second"

    def test_definition_indent(self):
        assert normalize(": Indented text") == "Indented text"

    def test_magic_words(self):
        assert normalize("__TOC__") == ""
        assert normalize("__NOTOC__") == ""
        assert normalize("__FORCETOC__") == ""

    def test_horizontal_rule(self):
        assert normalize("above\n----\nbelow") == "above\n\nbelow"


class TestTables:
    def test_table_content(self):
        markup = '{| class="wikitable"\n|-\n! Header1\n! Header2\n|-\n| Cell1\n| Cell2\n|}'
        result = normalize(markup)
        for text in ("Header1", "Header2", "Cell1", "Cell2"):
            assert text in result
        assert "{|" not in result
        assert "|}" not in result

    def test_cell_separators(self):
        assert normalize("| Apple || 5 || Common") == "Apple | 5 | Common"

    def test_caption(self):
        assert normalize("|+ My Table Caption") == "My Table Caption"


class TestWhitespace:
    def test_spaces_collapsed(self):
        assert normalize("too    many    spaces") == "too many spaces"

    def test_blank_lines_collapsed(self):
        assert normalize("para one\n\n\n\n\npara two") == "para one\n\npara two"

    def test_trimmed(self):
        assert normalize("  \n  hello  \n  ") == "hello"

    @pytest.mark.parametrize("markup", ["", "   \n\n   ", None])
    def test_empty(self, markup):
        assert normalize(markup) == ""


class TestIdempotence:
    """Normalizing clean output again changes nothing."""

    @pytest.mark.parametrize(
        "text",
        [
            "Fishing is a relaxing activity.",
            "Fish & Chips cost 5 coins",
            "The player's car",
            "intro\n\nSection\n\nbody",
            "- Item one\n- Sub-item\n- First",
            "Term\n Meaning",
            "Name | Price\nApple | 5",
            "name: Golden Apple\nprice: 50 coins",
            '"Hello world" (See: Fishing)',
        ],
    )
    def test_clean_text_unchanged(self, text):
        assert normalize(text) == text

    @pytest.mark.parametrize(
        "markup",
        [
            "intro\n== Section ==\nbody",
            "* Item one\n** Sub-item\n# First",
            "; Term\n: Meaning",
            '{| class="wikitable"\n|+ Prices\n! Name !! Price\n|-\n| Apple || 5\n|}',
            "{{Infobox item|name = Golden Apple|price = {{color|gold|50 coins}}}}",
            "{{quote|Hello [[world]]}} {{main|Fishing}}\n----\n'''Tom''' &amp; Jerry",
        ],
    )
    def test_normalized_output_is_fixed_point(self, markup):
        once = normalize(markup)
        assert normalize(once) == once


class TestMalformedInput:
    """Normalization never raises and leaves no template or link delimiters."""

    @pytest.mark.parametrize(
        "markup",
        [
            "{{unclosed template",
            "closing only }} here",
            "[[unclosed link",
            "{{a|{{b}}",
            "text ]] [[ more",
            "{{{{{{",
            "[[File:broken",
        ],
    )
    def test_no_residual_delimiters(self, markup):
        result = normalize(markup)
        for delimiter in ("{{", "}}", "[[", "]]"):
            assert delimiter not in result

    @pytest.mark.parametrize(
        "text, expected",
        [
            ("a{{b}}c", "abc"),
            ("[{{[", ""),
            ("{{{", "{"),
            ("]][[x", "x"),
            ("{[}]", "{[}]"),
            ("a [b] {c}", "a [b] {c}"),
        ],
    )
    def test_residual_delimiter_sweep(self, text, expected):
        assert strip_residual_delimiters(text) == expected

    def test_alternating_nested_delimiters_linear(self):
        depth = 20000
        wrappers = ["[" if i % 2 == 0 else "{" for i in range(depth)]
        markup = "".join(reversed(wrappers)) + "{{" + "".join(wrappers)

        started = time.perf_counter()
        result = MarkupNormalizer().process(markup)
        elapsed = time.perf_counter() - started

        assert result.text == ""
        assert elapsed < 2.0

    def test_deep_nesting_capped(self, caplog):
        normalizer = MarkupNormalizer(max_template_iterations=3)
        markup = "start " + "{{x|" * 10 + "core" + "}}" * 10 + " end"

        with caplog.at_level(logging.WARNING):
            result = normalizer.process(markup)

        assert result.template_capped is True
        assert result.template_iterations == 3
        assert result.text.startswith("start")
        assert result.text.endswith("end")
        assert "{{" not in result.text
        assert "}}" not in result.text
        assert "iteration cap" in caplog.text

    def test_deep_nesting_within_cap(self):
        markup = "{{x|" * 10 + "core" + "}}" * 10
        result = MarkupNormalizer(max_template_iterations=50).process(markup)

        assert result.template_capped is False
        assert result.template_iterations == 10
        assert result.text == ""

    def test_zero_cap_rejected(self):
        with pytest.raises(ValueError):
            MarkupNormalizer(max_template_iterations=0)

    def test_all_steps_applied(self):
        result = MarkupNormalizer().process("'''text'''")
        assert len(result.steps_applied) == 14
        assert result.steps_applied[0] == "transclusion"
        assert result.steps_applied[-1] == "whitespace"


class TestRealisticPage:
    def test_mixed_markup(self):
        markup = """== Overview ==
'''Fishing''' is an [[Activities|activity]] in ''[[Sneaky Sasquatch]]''.

Players can catch [[Fish]] using a [[Fishing Rod|rod]].

{{main|Fish}}

=== Locations ===
* [[Lake]]
* [[River]]
* [[Ocean]]

[[Category:Activities]]
[[File:Fishing.png|thumb|250px]]"""

        result = normalize(markup)

        assert "Overview" in result
        assert "Fishing is an activity in Sneaky Sasquatch" in result
        assert "Players can catch Fish using a rod" in result
        assert "(See: Fish)" in result
        assert "Locations" in result
        for item in ("- Lake", "- River", "- Ocean"):
            assert item in result
        for leftover in ("[[", "]]", "''", "Category:", "File:"):
            assert leftover not in result

    def test_infobox_page(self):
        markup = (
            "{{Infobox item\n"
            "| name = Golden Apple\n"
            "| image = golden_apple.png\n"
            "| price = {{color|gold|50 coins}}\n"
            "| location = [[General Store]]\n"
            "}}\n"
            "The '''Golden Apple''' is a rare [[Food|food]]."
        )

        result = normalize(markup)

        assert "name: Golden Apple" in result
        assert "price: 50 coins" in result
        assert "location: General Store" in result
        assert "golden_apple.png" not in result
        assert "The Golden Apple is a rare food." in result
