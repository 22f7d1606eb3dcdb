"""Hello World — the simplest whiskers setup.

Demonstrates rendering by bare name, partials shared across the views
tree, the error-first callback contract, and live reload of edited views.

Run:
    python app.py
"""

import logging
from pathlib import Path

from whiskers import TemplateEngine

VIEWS = Path(__file__).parent / "views"

engine = TemplateEngine(filter=["**.mustache"], flatten=True, watch=True)

# What a host framework passes along with every render
settings = {"views": str(VIEWS)}


def page(name: str, **context: object) -> str:
    """Render a view, raising on failure."""
    return engine.render(name, {"settings": settings, **context}).unwrap()


def page_or_error(name: str, **context: object) -> tuple[int, str]:
    """Render a view the way a server handler would: status plus body."""
    response: list[tuple[int, str]] = []

    def done(error: BaseException | None, output: str | None) -> None:
        if error is not None:
            response.append((500, f"Template error: {error}"))
        else:
            response.append((200, output or ""))

    engine.render(name, {"settings": settings, **context}, done)
    return response[0]


if __name__ == "__main__":
    logging.basicConfig(level=logging.DEBUG)
    print(page("index.mustache", title="Hello", items=["alpha", "beta"]))
    print(page_or_error("missing.mustache"))
