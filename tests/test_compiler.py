"""Tests for whiskers.templating.compiler — chevron adapter and partial table."""

import logging
from pathlib import Path

import chevron
import pytest

from whiskers.errors import CompileError, RenderError
from whiskers.templating.compiler import (
    CompiledTemplate,
    PartialTable,
    compile_template,
    load_template,
)


class TestCompileTemplate:
    def test_renders_variables(self) -> None:
        template = compile_template("Hello, {{name}}!")
        assert template.ok
        assert template.render({"name": "World"}) == "Hello, World!"

    def test_escapes_html(self) -> None:
        template = compile_template("{{value}}")
        assert template.render({"value": "<b>"}) == "&lt;b&gt;"

    def test_triple_mustache_unescaped(self) -> None:
        template = compile_template("{{{value}}}")
        assert template.render({"value": "<b>"}) == "<b>"

    def test_sections(self) -> None:
        template = compile_template("{{#items}}<li>{{.}}</li>{{/items}}")
        assert template.render({"items": ["a", "b"]}) == "<li>a</li><li>b</li>"

    def test_reusable(self) -> None:
        template = compile_template("{{n}}")
        assert template.render({"n": 1}) == "1"
        assert template.render({"n": 2}) == "2"

    def test_tokens_kept(self) -> None:
        template = compile_template("a{{b}}")
        assert isinstance(template.tokens, list)
        assert ("variable", "b") in template.tokens


class TestCompileFailure:
    def test_unclosed_section_is_captured(self) -> None:
        template = compile_template("{{#items}}never closed", "bad.mustache")
        assert not template.ok
        assert isinstance(template.error, CompileError)
        assert template.error.path == "bad.mustache"
        assert isinstance(template.error.__cause__, chevron.ChevronError)

    def test_mismatched_close_is_captured(self) -> None:
        template = compile_template("{{#a}}x{{/b}}")
        assert isinstance(template.error, CompileError)

    def test_render_raises_compile_error(self) -> None:
        template = compile_template("{{#items}}never closed")
        with pytest.raises(CompileError):
            template.render({})

    def test_tokens_raise_compile_error(self) -> None:
        template = compile_template("{{#items}}never closed")
        with pytest.raises(CompileError):
            _ = template.tokens

    def test_failure_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="whiskers.templating"):
            compile_template("{{#items}}", "broken.mustache")
        assert "broken.mustache" in caplog.text


class TestRenderFailure:
    def test_lambda_error_wrapped(self) -> None:
        def boom(text, render):
            raise ValueError("lambda failed")

        template = compile_template("{{#boom}}x{{/boom}}", "home.mustache")
        with pytest.raises(RenderError, match="lambda failed") as info:
            template.render({"boom": boom})
        assert info.value.template == "home.mustache"
        assert isinstance(info.value.__cause__, ValueError)


class TestLoadTemplate:
    def test_reads_utf8(self, tmp_path: Path) -> None:
        path = tmp_path / "greet.mustache"
        path.write_text("Grüße, {{name}}", encoding="utf-8")
        template = load_template(path)
        assert template.source_path == str(path)
        assert template.render({"name": "Welt"}) == "Grüße, Welt"

    def test_missing_file_captured(self, tmp_path: Path) -> None:
        template = load_template(tmp_path / "gone.mustache")
        assert isinstance(template.error, CompileError)
        assert "cannot read template" in str(template.error)

    def test_undecodable_file_captured(self, tmp_path: Path) -> None:
        path = tmp_path / "binary.mustache"
        path.write_bytes(b"\xff\xfe\x00bad")
        assert isinstance(load_template(path).error, CompileError)


class TestPartialTable:
    def test_resolves_partials(self) -> None:
        partials = PartialTable({"header": compile_template("<h1>{{title}}</h1>")})
        page = compile_template("{{> header}}body")
        assert page.render({"title": "Hi"}, partials) == "<h1>Hi</h1>body"

    def test_nested_partials(self) -> None:
        partials = PartialTable({
            "outer": compile_template("[{{> inner}}]"),
            "inner": compile_template("{{x}}"),
        })
        assert compile_template("{{> outer}}").render({"x": 1}, partials) == "[1]"

    def test_missing_partial_raises(self) -> None:
        page = compile_template("{{> nope}}")
        with pytest.raises(RenderError, match="nope"):
            page.render({}, PartialTable({}))

    def test_missing_partial_without_table_raises(self) -> None:
        with pytest.raises(RenderError):
            compile_template("{{> nope}}").render({})

    def test_broken_partial_raises_its_compile_error(self) -> None:
        partials = PartialTable({"bad": compile_template("{{#x}}", "bad.mustache")})
        with pytest.raises(CompileError, match=r"bad\.mustache"):
            compile_template("{{> bad}}").render({}, partials)

    def test_mapping_protocol(self) -> None:
        table = PartialTable({"a": compile_template("a"), "b": compile_template("b")})
        assert "a" in table
        assert "z" not in table
        assert sorted(table) == ["a", "b"]
        assert len(table) == 2

    def test_repr(self) -> None:
        assert "error" in repr(CompiledTemplate("x.mustache", error=CompileError("x", "bad")))
