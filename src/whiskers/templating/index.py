"""Template index: every compiled template under the views root, by key.

Each template is registered under its root-relative path with the file
extension stripped (``partials/header``). With ``flatten`` it is also
registered under its bare name (``header``); when two files share a bare
name the one scanned last wins.

An index is never modified after construction. A refresh builds a new one
and publishes it by replacing the reference, so a render sees either the
old or the new set of templates, never a mix.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from types import MappingProxyType
from typing import Any

from whiskers.errors import TemplateNotFound
from whiskers.templating.compiler import CompiledTemplate, PartialTable, load_template


def strip_extension(path: str | Path) -> str:
    """Drop the final extension from the file name, keeping directories.

    ``partials/header.mustache`` becomes ``partials/header``. Dots in
    directory names and leading-dot file names are left alone.
    """
    pure = PurePosixPath(Path(path).as_posix())
    if not pure.suffix:
        return str(pure)
    return str(pure.with_suffix(""))


@dataclass(frozen=True, slots=True)
class TemplateRecord:
    """One compiled template as it appears in the index."""

    key: str
    template: CompiledTemplate
    source_path: Path

    def render(self, context: Any, partials: Mapping[str, Any] | None = None) -> str:
        return self.template.render(context, partials)


class TemplateIndex(Mapping[str, TemplateRecord]):
    """Immutable mapping of lookup key to ``TemplateRecord``.

    Doubles as the partial table: any indexed key can be used as
    ``{{> key}}`` from any other template.
    """

    __slots__ = ("_partials", "_records", "root")

    def __init__(self, root: str | Path, records: Mapping[str, TemplateRecord] | None = None) -> None:
        self.root = Path(root)
        self._records: Mapping[str, TemplateRecord] = MappingProxyType(dict(records or {}))
        self._partials = PartialTable(
            MappingProxyType({key: record.template for key, record in self._records.items()})
        )

    def __getitem__(self, key: str) -> TemplateRecord:
        return self._records[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __repr__(self) -> str:
        return f"TemplateIndex({str(self.root)!r}, keys={sorted(self._records)!r})"

    def partials(self) -> PartialTable:
        """The partial table handed to every render from this index."""
        return self._partials

    def lookup(self, name: str) -> TemplateRecord:
        """Return the record for *name*.

        Raises:
            TemplateNotFound: If no template is indexed under *name*.
        """
        record = self._records.get(name)
        if record is None:
            raise TemplateNotFound(name, self.root)
        return record

    def render(self, name: str, context: Any) -> str:
        """Render the template indexed under *name* with this index as partials."""
        return self.lookup(name).render(context, self._partials)


def build_index(
    root: str | Path,
    paths: Iterable[str | Path],
    *,
    flatten: bool = True,
) -> TemplateIndex:
    """Compile every file in *paths* and index it.

    Args:
        root: The views root; keys are relative to it.
        paths: Absolute template paths, in the order they should be applied.
        flatten: Also register each template under its bare name.

    Returns:
        A new, fully built ``TemplateIndex``.
    """
    base = Path(root).resolve()
    records: dict[str, TemplateRecord] = {}
    for path in paths:
        source_path = Path(path)
        template = load_template(source_path)
        relative = strip_extension(source_path.relative_to(base))

        if flatten:
            name = PurePosixPath(relative).name
            records[name] = TemplateRecord(name, template, source_path)

        records[relative] = TemplateRecord(relative, template, source_path)

    return TemplateIndex(base, records)
