"""Template engine: render Mustache views from a directory tree.

The engine plugs into a host framework as a view renderer::

    engine = TemplateEngine(flatten=True)
    engine.render("home.mustache", {"settings": {"views": "views"}, "title": "Hi"})

The first render for a views root scans and compiles the whole tree
synchronously, so the first request never races an empty cache. After
that the tree is watched and every change triggers a full refresh in the
background. A refresh builds a complete new index and publishes it with a
single reference assignment; renders never lock and never see a
half-built index.

Every render failure, from a missing root to a broken partial, is
returned as ``Failed`` (and passed to the callback). Only configuration
errors raise.
"""

from __future__ import annotations

import functools
import logging
import os
import threading
from collections.abc import Callable, Mapping
from pathlib import Path
from typing import Any, TypeAlias

import anyio.to_thread

from whiskers.config import EngineConfig
from whiskers.errors import ViewsRootMissing
from whiskers.result import Failed, Rendered, RenderResult
from whiskers.scanner import scan_directories, scan_files
from whiskers.templating.index import TemplateIndex, build_index
from whiskers.watch import DirectoryWatch, WatchSet

logger = logging.getLogger("whiskers.engine")

RenderCallback: TypeAlias = Callable[[BaseException | None, str | None], object]


def views_root(template_data: Any) -> str | Path:
    """Extract ``settings.views`` from render data.

    Accepts mappings and attribute-style objects at either level.

    Raises:
        ViewsRootMissing: If no views root is present.
    """
    settings = _get(template_data, "settings")
    views = _get(settings, "views") if settings is not None else None
    if views is None or views == "":
        raise ViewsRootMissing
    return views


def _get(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


class TemplateEngine:
    """Renders templates from a views root, keeping a watched in-memory index.

    Args:
        options: Option mapping (``filter``, ``flatten``, ``watch``).
        watch_set_factory: Builds the ``WatchSet`` for each views root.
        **kwargs: Options given as keywords; merged over *options*.

    Raises:
        ConfigurationError: If an option name is not recognized.
    """

    __slots__ = (
        "_closed",
        "_config",
        "_indexes",
        "_init_lock",
        "_primary",
        "_refreshers",
        "_watch_set_factory",
        "_watch_sets",
    )

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        *,
        watch_set_factory: Callable[[], WatchSet] = WatchSet,
        **kwargs: Any,
    ) -> None:
        self._config = EngineConfig.from_options({**(options or {}), **kwargs})
        self._watch_set_factory = watch_set_factory
        self._indexes: dict[Path, TemplateIndex] = {}
        self._watch_sets: dict[Path, WatchSet] = {}
        self._primary: dict[Path, DirectoryWatch] = {}
        self._refreshers: dict[Path, Callable[[], None]] = {}
        self._init_lock = threading.Lock()
        self._closed = False

    # -- Configuration --

    @property
    def config(self) -> EngineConfig:
        return self._config

    def configure(self, options: Mapping[str, Any] | None = None, /, **kwargs: Any) -> TemplateEngine:
        """Replace recognized options and return the engine for chaining.

        Takes effect on the next refresh.

        Raises:
            ConfigurationError: If an option name is not recognized.
        """
        self._config = self._config.merge({**(options or {}), **kwargs})
        return self

    # -- Rendering --

    def render(
        self,
        template_path: str | Path,
        template_data: Any,
        callback: RenderCallback | None = None,
    ) -> RenderResult:
        """Render the template named by *template_path*'s bare file name.

        *template_data* is the template context and must carry the views
        root as ``settings.views``. Every indexed template is available as
        a partial.

        If *callback* is given it is called exactly once as
        ``callback(error, output)``, with exactly one of the two set.
        """
        result = self._render(template_path, template_data)
        if callback is not None:
            callback(*result.as_callback_args())
        return result

    __call__ = render

    async def render_async(self, template_path: str | Path, template_data: Any) -> RenderResult:
        """Like ``render()``, but scans a cold views root in a worker thread."""
        try:
            root = self._key(views_root(template_data))
            if root not in self._indexes:
                await anyio.to_thread.run_sync(self.get_index, root)
        except Exception as exc:
            return Failed(exc)
        return self._render(template_path, template_data)

    def _render(self, template_path: str | Path, template_data: Any) -> RenderResult:
        name = Path(template_path).stem
        try:
            index = self.get_index(views_root(template_data))
            return Rendered(index.render(name, template_data))
        except Exception as exc:
            logger.debug("Rendering %r failed: %s", name, exc)
            return Failed(exc)

    # -- Index lifecycle --

    @staticmethod
    def _key(root: str | Path) -> Path:
        return Path(os.path.abspath(root))

    def peek(self, root: str | Path) -> TemplateIndex | None:
        """The published index for *root*, or None if it was never loaded."""
        return self._indexes.get(self._key(root))

    def get_index(self, root: str | Path) -> TemplateIndex:
        """Return the index for *root*, building it on first use.

        First use scans synchronously, then watches *root* for changes.
        Later calls return the published index without touching the disk.
        """
        key = self._key(root)
        index = self._indexes.get(key)
        if index is not None:
            return index

        with self._init_lock:
            index = self._indexes.get(key)
            if index is not None:
                return index
            index = self.refresh(key)
            if key not in self._indexes:
                return index
            if not self._closed and key not in self._primary:
                try:
                    self._primary[key] = self._watches(key).watch(key.resolve(), self._refresher(key))
                except OSError:
                    logger.warning("Could not watch views root %s", key, exc_info=True)
            return index

    def refresh(self, root: str | Path) -> TemplateIndex:
        """Rescan, recompile, and republish the index for *root*.

        Safe to call at any time and from any thread; the last refresh to
        complete wins.
        """
        key = self._key(root)
        logger.debug("Refreshing templates for %s", key)

        if not key.is_dir():
            # Unpublished, so the next render retries from cold
            logger.warning("Views root %s does not exist", key)
            self._forget(key)
            return TemplateIndex(key)

        self.refresh_watches(key)

        config = self._config
        index = build_index(key, scan_files(key, config.filter), flatten=config.flatten)
        self._indexes[key] = index

        logger.debug("Refreshing templates complete (%d keys)", len(index))
        return index

    def refresh_watches(self, root: str | Path) -> None:
        """Re-subscribe to every directory under *root*, root included.

        All previous subscriptions for *root* are closed first, even when
        the directory list is unchanged.
        """
        key = self._key(root)
        if not self._config.watch:
            logger.debug("Refreshing watched directories has been disabled.")
            # The primary root watch is not part of the set and stays
            watch_set = self._watch_sets.get(key)
            if watch_set is not None:
                watch_set.close_all()
            return
        if self._closed:
            return

        logger.debug("Refreshing watched directories")
        self._watches(key).replace(scan_directories(key), self._refresher(key))

    def _forget(self, key: Path) -> None:
        self._indexes.pop(key, None)
        primary = self._primary.pop(key, None)
        if primary is not None:
            primary.close()
        watch_set = self._watch_sets.get(key)
        if watch_set is not None:
            watch_set.close_all()

    def _watches(self, key: Path) -> WatchSet:
        watch_set = self._watch_sets.get(key)
        if watch_set is None:
            watch_set = self._watch_sets.setdefault(key, self._watch_set_factory())
        return watch_set

    def _refresher(self, key: Path) -> Callable[[], None]:
        refresher = self._refreshers.get(key)
        if refresher is None:
            refresher = self._refreshers.setdefault(
                key, functools.partial(self._refresh_in_background, key),
            )
        return refresher

    def _refresh_in_background(self, key: Path) -> None:
        try:
            self.refresh(key)
        except Exception:
            # Keep serving the previous index
            logger.exception("Background refresh failed for %s", key)

    # -- Teardown --

    def close(self) -> None:
        """Release every watch. Published indexes stay readable."""
        self._closed = True
        self._primary.clear()
        watch_sets = list(self._watch_sets.values())
        self._watch_sets.clear()
        for watch_set in watch_sets:
            watch_set.close()

    def __enter__(self) -> TemplateEngine:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
