"""Tests for dess.content.frontmatter: metadata block extraction."""

from __future__ import annotations

from pathlib import Path

import pytest

from dess._errors import FrontmatterError
from dess.content.frontmatter import extract_frontmatter, has_frontmatter, script_paths


class TestWithoutFrontmatter:
    """Documents without a complete block come back verbatim."""

    @pytest.mark.parametrize(
        "text",
        [
            "",
            "# Hello World\n",
            "Plain paragraph.\n\n---\n\nAfter a rule.\n",
            "---\ntitle: never closed\n\n# Body\n",
            "  ---\ntitle: indented\n---\n",
            "text first\n---\ntitle: x\n---\n",
        ],
    )
    def test_body_is_input_verbatim(self, text: str) -> None:
        meta, body = extract_frontmatter(text)
        assert meta == {}
        assert body == text

    def test_has_frontmatter_false(self) -> None:
        assert not has_frontmatter("# Just markdown\n")


class TestYamlFrontmatter:
    """``---`` delimited YAML blocks."""

    def test_basic(self) -> None:
        meta, body = extract_frontmatter("---\ntitle: Hello\nlayout: ./post.html\n---\n\n# Hello\n")
        assert meta == {"title": "Hello", "layout": "./post.html"}
        assert body == "\n# Hello\n"

    def test_explicit_yaml_opener(self) -> None:
        meta, body = extract_frontmatter("---yaml\ntitle: Hi\n---\nBody\n")
        assert meta == {"title": "Hi"}
        assert body == "Body\n"

    def test_empty_block(self) -> None:
        meta, body = extract_frontmatter("---\n---\nBody\n")
        assert meta == {}
        assert body == "Body\n"

    def test_crlf_line_endings(self) -> None:
        meta, body = extract_frontmatter("---\r\ntitle: Hi\r\n---\r\nBody\r\n")
        assert meta == {"title": "Hi"}
        assert body == "Body\r\n"

    def test_leading_bom(self) -> None:
        meta, body = extract_frontmatter("\ufeff---\ntitle: Hi\n---\nBody\n")
        assert meta == {"title": "Hi"}
        assert body == "Body\n"

    def test_block_at_end_of_file(self) -> None:
        meta, body = extract_frontmatter("---\ntitle: Only\n---")
        assert meta == {"title": "Only"}
        assert body == ""

    def test_only_first_block_is_metadata(self) -> None:
        text = "---\ntitle: A\n---\nBody\n\n---\n\nMore\n"
        meta, body = extract_frontmatter(text)
        assert meta == {"title": "A"}
        assert body == "Body\n\n---\n\nMore\n"

    def test_has_frontmatter_true(self) -> None:
        assert has_frontmatter("---\ntitle: x\n---\n")


class TestOtherFormats:
    """TOML and JSON blocks."""

    def test_toml_plus_delimiters(self) -> None:
        meta, body = extract_frontmatter('+++\ntitle = "Hi"\ndraft = true\n+++\nBody\n')
        assert meta == {"title": "Hi", "draft": True}
        assert body == "Body\n"

    def test_toml_dash_opener(self) -> None:
        meta, body = extract_frontmatter('---toml\ntitle = "Hi"\n---\nBody\n')
        assert meta == {"title": "Hi"}
        assert body == "Body\n"

    def test_json(self) -> None:
        meta, body = extract_frontmatter('---json\n{"title": "Hi", "script": ["a.ts"]}\n---\nBody\n')
        assert meta == {"title": "Hi", "script": ["a.ts"]}
        assert body == "Body\n"


class TestMalformedFrontmatter:
    """Blocks that are present but unusable raise FrontmatterError."""

    def test_invalid_yaml(self) -> None:
        with pytest.raises(FrontmatterError, match="invalid yaml frontmatter"):
            extract_frontmatter("---\ntitle: [unclosed\n---\nBody\n")

    def test_invalid_toml(self) -> None:
        with pytest.raises(FrontmatterError, match="invalid toml frontmatter"):
            extract_frontmatter("+++\ntitle = \n+++\nBody\n")

    def test_invalid_json(self) -> None:
        with pytest.raises(FrontmatterError, match="invalid json frontmatter"):
            extract_frontmatter("---json\n{title: nope}\n---\nBody\n")

    def test_non_mapping(self) -> None:
        with pytest.raises(FrontmatterError, match="must be a mapping"):
            extract_frontmatter("---\n- a\n- b\n---\nBody\n")

    def test_error_carries_path(self) -> None:
        path = Path("/site/broken.md")
        with pytest.raises(FrontmatterError) as excinfo:
            extract_frontmatter("---\n- a\n---\n", path=path)
        assert excinfo.value.path == path
        assert str(path) in str(excinfo.value)


class TestScriptPaths:
    """script / scripts / js declarations."""

    def test_none_declared(self) -> None:
        assert script_paths({"title": "x"}) == ()

    def test_single_string(self) -> None:
        assert script_paths({"script": "./app.ts"}) == ("./app.ts",)

    def test_list(self) -> None:
        assert script_paths({"scripts": ["a.ts", "b.js"]}) == ("a.ts", "b.js")

    def test_all_keys_merged_without_duplicates(self) -> None:
        meta = {"script": "a.ts", "scripts": ["b.js", "a.ts"], "js": "c.tsx"}
        assert script_paths(meta) == ("a.ts", "b.js", "c.tsx")

    def test_blank_entries_skipped(self) -> None:
        assert script_paths({"scripts": ["", "  ", "a.js"]}) == ("a.js",)
