"""Chevron adapter: compile Mustache sources into reusable handles.

Compilation tokenizes the source once with ``chevron.tokenizer`` and keeps
the token list; rendering hands that list straight back to
``chevron.render`` so templates are never re-parsed per request.

A source that fails to tokenize still produces a handle. The handle holds
the ``CompileError`` and raises it when rendered, so one broken file never
takes the rest of the views tree down with it.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any, TypeAlias

import chevron
from chevron.tokenizer import tokenize

from whiskers.errors import CompileError, RenderError, WhiskersError

logger = logging.getLogger("whiskers.templating")

Tokens: TypeAlias = list[tuple[str, str]]


class CompiledTemplate:
    """A tokenized template, or the error that prevented tokenizing it."""

    __slots__ = ("_tokens", "error", "source_path")

    def __init__(
        self,
        source_path: str | Path,
        tokens: Tokens | None = None,
        error: CompileError | None = None,
    ) -> None:
        self.source_path = str(source_path)
        self._tokens: Tokens = tokens if tokens is not None else []
        self.error = error

    @property
    def ok(self) -> bool:
        """True when the source compiled."""
        return self.error is None

    @property
    def tokens(self) -> Tokens:
        """The token list. Raises the stored ``CompileError`` if compilation failed."""
        if self.error is not None:
            raise self.error
        return self._tokens

    def render(self, context: Any, partials: Mapping[str, Tokens] | None = None) -> str:
        """Render against *context*, resolving ``{{> name}}`` through *partials*.

        Raises:
            CompileError: If this template (or a partial it uses) failed to compile.
            RenderError: If evaluation fails, including a missing partial.
        """
        tokens = self.tokens
        try:
            return chevron.render(
                template=tokens,
                data=context,
                partials_dict=partials if partials is not None else _NO_PARTIALS,
            )
        except WhiskersError:
            raise
        except Exception as exc:
            raise RenderError(str(exc) or type(exc).__name__, template=self.source_path) from exc

    def __repr__(self) -> str:
        state = "ok" if self.ok else "error"
        return f"CompiledTemplate({self.source_path!r}, {state})"


def compile_template(source: str, source_path: str | Path = "<string>") -> CompiledTemplate:
    """Tokenize *source*. Never raises for bad syntax; see ``CompiledTemplate.error``."""
    try:
        tokens = list(tokenize(source))
    except chevron.ChevronError as exc:
        error = CompileError(source_path, str(exc).replace("\n", " "))
        error.__cause__ = exc
        logger.warning("%s", error)
        return CompiledTemplate(source_path, error=error)
    return CompiledTemplate(source_path, tokens=tokens)


def load_template(path: str | Path) -> CompiledTemplate:
    """Read a UTF-8 template file and compile it."""
    try:
        source = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        error = CompileError(path, f"cannot read template: {exc}")
        error.__cause__ = exc
        logger.warning("%s", error)
        return CompiledTemplate(path, error=error)
    return compile_template(source, path)


class PartialTable(Mapping[str, Tokens]):
    """Read-only partial lookup handed to chevron.

    Chevron falls back to reading ``<name>.mustache`` from the working
    directory (or rendering nothing) when a partial is missing from its
    dict. Raising ``RenderError`` instead of ``KeyError`` keeps a typo in
    ``{{> name}}`` from rendering silently.
    """

    __slots__ = ("_templates",)

    def __init__(self, templates: Mapping[str, CompiledTemplate]) -> None:
        self._templates = templates

    def __getitem__(self, name: str) -> Tokens:
        template = self._templates.get(name)
        if template is None:
            raise RenderError(f"Partial {name!r} not found")
        return template.tokens

    def __contains__(self, name: object) -> bool:
        return name in self._templates

    def __iter__(self) -> Iterator[str]:
        return iter(self._templates)

    def __len__(self) -> int:
        return len(self._templates)


_NO_PARTIALS = PartialTable({})
