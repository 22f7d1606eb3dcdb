"""Shared fixtures for whiskers tests."""

from collections.abc import Callable
from pathlib import Path

import pytest
from views_support import VIEWS, FakeObserver, write_tree

from whiskers.engine import TemplateEngine
from whiskers.watch import WatchSet


@pytest.fixture
def views(tmp_path: Path) -> Path:
    """A views root with nested templates, a partial, and a name collision."""
    return write_tree(tmp_path / "views", VIEWS)


@pytest.fixture
def observers() -> list[FakeObserver]:
    return []


@pytest.fixture
def watch_set_factory(observers: list[FakeObserver]) -> Callable[[], WatchSet]:
    def factory() -> WatchSet:
        def observer_factory() -> FakeObserver:
            observer = FakeObserver()
            observers.append(observer)
            return observer

        return WatchSet(observer_factory, settle=0)  # type: ignore[arg-type]

    return factory


@pytest.fixture
def engine(watch_set_factory):
    """An engine whose watches go to a FakeObserver."""
    eng = TemplateEngine(watch_set_factory=watch_set_factory)
    yield eng
    eng.close()
