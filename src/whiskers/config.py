"""Engine configuration.

EngineConfig is a frozen dataclass — immutable after creation, with
fail-fast validation of option names so a typo never silently falls back
to a default.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from whiskers.errors import ConfigurationError

DEFAULT_FILTER: tuple[str, ...] = ("**.mustache",)


@dataclass(frozen=True, slots=True)
class EngineConfig:
    """Template engine configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = EngineConfig.from_options({"flatten": False, "watch": False})
    """

    # Glob patterns matched against root-relative paths ("/" separated)
    filter: tuple[str, ...] = DEFAULT_FILTER

    # Also index each template under its bare file name
    flatten: bool = True

    # Watch every subdirectory too; the root itself is always watched
    watch: bool = True

    def __post_init__(self) -> None:
        if isinstance(self.filter, str):
            object.__setattr__(self, "filter", (self.filter,))
        else:
            object.__setattr__(self, "filter", tuple(self.filter))

    @classmethod
    def options(cls) -> frozenset[str]:
        """Names of the recognized options."""
        return frozenset(f.name for f in dataclasses.fields(cls))

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None) -> EngineConfig:
        """Build a config from an option mapping.

        Raises:
            ConfigurationError: If *options* contains an unrecognized key.
        """
        return cls().merge(options)

    def merge(self, options: Mapping[str, Any] | None) -> EngineConfig:
        """Return a copy with the given options replaced."""
        if not options:
            return self
        known = self.options()
        for key in options:
            if key not in known:
                msg = (
                    f"Unknown setting, attempted to set value for {key!r}. "
                    f"Recognized settings: {', '.join(sorted(known))}"
                )
                raise ConfigurationError(msg)
        return dataclasses.replace(self, **options)
