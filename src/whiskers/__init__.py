"""Whiskers — Mustache views for Python web servers, with a watched template cache.

Point the engine at a views directory and render by name. Templates are
compiled once, indexed under their relative path (and bare name), and
recompiled whenever anything under the views root changes.

Basic usage::

    from whiskers import TemplateEngine

    engine = TemplateEngine(flatten=True, watch=True)

    result = engine.render(
        "home.mustache",
        {"settings": {"views": "views"}, "title": "Hello"},
    )
    if result:
        print(result.output)

Error-first callback style, for hosts that expect it::

    engine.render("home", data, lambda error, output: ...)
"""

__version__ = "0.1.0"
__all__ = [
    "CompileError",
    "ConfigurationError",
    "EngineConfig",
    "Failed",
    "RenderError",
    "RenderResult",
    "Rendered",
    "TemplateEngine",
    "TemplateIndex",
    "TemplateNotFound",
    "TemplateRecord",
    "WhiskersError",
]

# Public name -> defining module
_LAZY_IMPORTS: dict[str, str] = {
    "TemplateEngine": "whiskers.engine",
    "EngineConfig": "whiskers.config",
    "TemplateIndex": "whiskers.templating.index",
    "TemplateRecord": "whiskers.templating.index",
    "Rendered": "whiskers.result",
    "Failed": "whiskers.result",
    "RenderResult": "whiskers.result",
    "WhiskersError": "whiskers.errors",
    "ConfigurationError": "whiskers.errors",
    "CompileError": "whiskers.errors",
    "RenderError": "whiskers.errors",
    "TemplateNotFound": "whiskers.errors",
}


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import whiskers`` fast and free of watchdog/chevron imports
    until something is actually used.
    """
    module_name = _LAZY_IMPORTS.get(name)
    if module_name is None:
        msg = f"module {__name__!r} has no attribute {name!r}"
        raise AttributeError(msg)

    import importlib

    return getattr(importlib.import_module(module_name), name)
