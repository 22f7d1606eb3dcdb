"""Whiskers exception hierarchy.

Shared across the engine, the compiler adapter, and the watch controller so
every module raises and catches the same types.
"""

from pathlib import Path


class WhiskersError(Exception):
    """Base for all whiskers-specific errors."""


class ConfigurationError(WhiskersError):
    """Raised when engine configuration is invalid.

    Raised synchronously by ``EngineConfig.from_options()`` and
    ``TemplateEngine.configure()``. Never caught internally.
    """


class ViewsRootMissing(ConfigurationError):  # noqa: N818 — reads better at call sites
    """The render data carries no ``settings.views`` root directory."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(
            detail or "Render data must provide the views root as settings.views"
        )


class CompileError(WhiskersError):
    """A template source failed to compile.

    Captured when the views root is scanned and raised only when something
    renders the broken template, either directly or as a partial.
    """

    def __init__(self, path: str | Path, detail: str) -> None:
        self.path = str(path)
        self.detail = detail
        super().__init__(f"Failed to compile {self.path}: {detail}")


class RenderError(WhiskersError):
    """A compiled template failed while rendering."""

    def __init__(self, detail: str, *, template: str | None = None) -> None:
        self.detail = detail
        self.template = template
        if template:
            super().__init__(f"Error rendering {template!r}: {detail}")
        else:
            super().__init__(detail)


class TemplateNotFound(WhiskersError, LookupError):  # noqa: N818 — conventional name
    """No template is indexed under the requested key."""

    def __init__(self, name: str, root: str | Path | None = None) -> None:
        self.name = name
        self.root = str(root) if root is not None else None
        if self.root:
            super().__init__(f"Template {name!r} not found in {self.root}")
        else:
            super().__init__(f"Template {name!r} not found")
