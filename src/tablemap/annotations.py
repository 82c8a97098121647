"""
Field directives and one-time record introspection.

Directives are attached to fields with `typing.Annotated`:

    @dataclass
    class Book:
        _id: int | None = None
        title: Annotated[str, Index(unique=True)] = ''
        author_name: Annotated[str, Rename('author')] = ''
        cover: Annotated[bytes, Ignore()] = b''

Rename, Ignore and Index are honored only when the mapper is created with
`use_annotations=True`. Transient is always honored, as are ClassVar, Final
and InitVar declarations, which never map to columns.
"""
import dataclasses
import inspect
import logging
import types
import typing
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Final, Union

from tablemap.types import primitive_types

logger = logging.getLogger(__name__)

__all__ = [
    'Rename',
    'Ignore',
    'Transient',
    'Index',
    'CompositeIndex',
    'IndexBuilder',
    'FieldSpec',
    'inspect_record',
]


@dataclass(frozen=True)
class Rename:
    """Store the field under a different column name."""
    name: str


@dataclass(frozen=True)
class Ignore:
    """Leave the field out of the mapping."""


@dataclass(frozen=True)
class Transient:
    """Leave the field out of the mapping, regardless of mapper options."""


@dataclass(frozen=True)
class CompositeIndex:
    """Membership of a field in a named, possibly multi-column, index.

    Args:
        name: index name; fields sharing a name form one composite index
        order: position of this column within the index
        ascending: sort direction of this column
    """
    name: str
    order: int = 0
    ascending: bool = True


@dataclass(frozen=True)
class Index:
    """Index directive for a field.

    Without explicit names the field gets a single-column index named
    `<table>_<column>`, unique when `unique` is set.
    """
    unique: bool = False
    names: tuple[CompositeIndex, ...] = ()
    unique_names: tuple[CompositeIndex, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'names', tuple(self.names))
        object.__setattr__(self, 'unique_names', tuple(self.unique_names))


class IndexBuilder:
    """Fluent construction of an Index directive.

    Examples
        IndexBuilder().unique().build()
        IndexBuilder().named('by_author').order(1).descending().build()
        IndexBuilder().named('isbn').unique().named('by_title').build()
    """

    def __init__(self) -> None:
        self._unique = False
        self._names: list[dict] = []
        self._unique_names: list[dict] = []
        self._current: dict | None = None

    def named(self, name: str) -> 'IndexBuilder':
        """Start a new index membership under `name`.
        """
        self._current = {'name': name, 'order': 0, 'ascending': True}
        if self._unique and not self._names and not self._unique_names:
            self._unique_names.append(self._current)
        else:
            self._names.append(self._current)
        return self

    def unique(self) -> 'IndexBuilder':
        """Make the current named index unique, or the implicit index when none is named.
        """
        if self._current is None:
            self._unique = True
        elif any(n is self._current for n in self._names):
            self._names = [n for n in self._names if n is not self._current]
            self._unique_names.append(self._current)
        return self

    def order(self, order: int) -> 'IndexBuilder':
        self._require_current('order')
        self._current['order'] = order
        return self

    def ascending(self) -> 'IndexBuilder':
        self._require_current('ascending')
        self._current['ascending'] = True
        return self

    def descending(self) -> 'IndexBuilder':
        self._require_current('descending')
        self._current['ascending'] = False
        return self

    def _require_current(self, what: str) -> None:
        if self._current is None:
            raise ValueError(f'Call named() before {what}()')

    def build(self) -> Index:
        unique = self._unique and not (self._names or self._unique_names)
        return Index(unique=unique,
                     names=tuple(CompositeIndex(**n) for n in self._names),
                     unique_names=tuple(CompositeIndex(**n) for n in self._unique_names))


@dataclass(frozen=True)
class FieldSpec:
    """Introspected description of one mappable field.
    """
    name: str
    column: str
    type: Any
    nullable: bool
    index: Index | None = None
    metadata: tuple = field(default=(), compare=False)

    @property
    def is_primitive(self) -> bool:
        """Non-nullable scalar that keeps its zero value on a null cell."""
        return not self.nullable and self.type in primitive_types


def _split_annotated(hint: Any) -> tuple[Any, tuple]:
    """Strip (possibly nested) Annotated wrappers and collect their metadata.
    """
    metadata: tuple = ()
    while typing.get_origin(hint) is Annotated:
        metadata += tuple(hint.__metadata__)
        hint = hint.__origin__
    return hint, metadata


def _is_pseudo_field(hint: Any) -> bool:
    """Check for ClassVar, Final and InitVar declarations."""
    if hint is ClassVar or hint is Final:
        return True
    if typing.get_origin(hint) in {ClassVar, Final}:
        return True
    return isinstance(hint, dataclasses.InitVar)


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    """Resolve `X | None` and `Optional[X]` to (X, True).
    """
    if typing.get_origin(hint) in {Union, types.UnionType}:
        args = [arg for arg in typing.get_args(hint) if arg is not type(None)]
        if len(args) == len(typing.get_args(hint)):
            return hint, False
        if len(args) == 1:
            return args[0], True
        return Union[tuple(args)], True
    if hint is None or hint is type(None):
        return hint, True
    return hint, False


def _declared_names(record_type: type) -> list[str]:
    """Field names in declaration order, base classes first.
    """
    names: dict[str, None] = {}
    for klass in reversed(record_type.__mro__):
        if klass is object:
            continue
        for name in inspect.get_annotations(klass):
            names.setdefault(name, None)
    return list(names)


def inspect_record(record_type: type, use_annotations: bool = False) -> tuple[FieldSpec, ...]:
    """Enumerate the mappable fields of a record type.

    Args:
        record_type: class to introspect
        use_annotations: honor Rename, Ignore and Index directives

    Returns
        Immutable tuple of FieldSpec in declaration order
    """
    hints = typing.get_type_hints(record_type, include_extras=True)
    specs = []
    for name in _declared_names(record_type):
        hint, metadata = _split_annotated(hints[name])
        if _is_pseudo_field(hint):
            continue
        resolved, nullable = _unwrap_optional(hint)
        resolved, inner_metadata = _split_annotated(resolved)
        metadata += inner_metadata
        if any(isinstance(m, Transient) for m in metadata):
            continue
        column, index = name, None
        if use_annotations:
            if any(isinstance(m, Ignore) for m in metadata):
                continue
            for m in metadata:
                if isinstance(m, Rename):
                    column = m.name
                elif isinstance(m, Index):
                    index = m
        specs.append(FieldSpec(name=name, column=column, type=resolved,
                               nullable=nullable or resolved not in primitive_types,
                               index=index, metadata=metadata))
    logger.debug(f'Introspected {record_type.__name__}: {[s.name for s in specs]}')
    return tuple(specs)
