"""
Record types shared by the test suite.

Defined at module level so forward references resolve.
"""
import datetime
import decimal
import enum
from dataclasses import dataclass, field
from typing import Annotated, ClassVar

from tablemap import ColumnType, CompositeIndex, FieldConverter, Ignore, Index
from tablemap import Rename, Transient


class Color(enum.Enum):
    RED = 1
    GREEN = 2


@dataclass
class Author:
    _id: int | None = None
    name: str = ''
    born: datetime.date | None = None


@dataclass
class Book:
    _id: int | None = None
    title: str = ''
    pages: int = 0
    price: decimal.Decimal | None = None
    rating: float = 0.0
    in_print: bool = False
    cover: bytes | None = None
    color: Color | None = None
    author: Author | None = None


@dataclass
class Parent:
    _id: int | None = None
    name: str = ''
    child: 'Child | None' = None


@dataclass
class Child:
    _id: int | None = None
    name: str = ''
    parent: Parent | None = None


@dataclass
class Node:
    _id: int | None = None
    label: str = ''
    parent: 'Node | None' = None


@dataclass
class Indexed:
    VERSION: ClassVar[int] = 1

    _id: int | None = None
    title: Annotated[str, Index(unique=True)] = ''
    author: Annotated[str, Index(names=(CompositeIndex('by_author_year'),))] = ''
    year: Annotated[int, Index(names=(CompositeIndex('by_author_year', order=1, ascending=False),))] = 0
    nickname: Annotated[str, Rename('alias')] = ''
    scratch: Annotated[str, Ignore()] = ''
    cache: Annotated[str, Transient()] = ''


@dataclass
class Tagged:
    _id: int | None = None
    name: str = ''
    tags: list[str] = field(default_factory=list)


@dataclass
class Holder:
    _id: int | None = None
    broken: 'Broken | None' = None


@dataclass
class Broken:
    _id: int | None = None
    owner: Holder | None = None
    tags: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Point:
    _id: int | None = None
    x: float = 0.0
    y: float = 0.0


@dataclass
class Timestamped:
    _id: int | None = None
    created: datetime.datetime | None = None


@dataclass
class Article(Timestamped):
    headline: str = ''
    created: datetime.datetime | None = None


class Plain:
    """Non-dataclass record with class-level defaults."""
    _id: int | None
    name: str = 'unnamed'
    count: int


@dataclass
class Conflicting:
    _id: int | None = None
    a: Annotated[str, Index(names=(CompositeIndex('pair', order=1),))] = ''
    b: Annotated[str, Index(names=(CompositeIndex('pair', order=1),))] = ''


@dataclass
class Ambiguous:
    _id: int | None = None
    a: Annotated[str, Index(names=(CompositeIndex('same'),))] = ''
    b: Annotated[str, Index(unique_names=(CompositeIndex('same', order=1),))] = ''


class StringListConverter(FieldConverter):
    """Stores a list of strings as comma separated text."""

    def from_row_value(self, row, index):
        text = row.get_str(index)
        return text.split(',') if text else []

    def to_row_value(self, value):
        return ','.join(value)

    @property
    def column_type(self):
        return ColumnType.TEXT


@dataclass
class Shelf:
    """Points into the self-referencing Node."""
    _id: int | None = None
    top: Node | None = None


@dataclass
class Household:
    """Points into the mutually referencing Parent and Child."""
    _id: int | None = None
    head: Parent | None = None


@dataclass
class Shop:
    _id: int | None = None
    name: Annotated[str, Index(names=(CompositeIndex('by_name'),))] = ''


@dataclass
class Customer:
    _id: int | None = None
    name: Annotated[str, Index(names=(CompositeIndex('by_name'),))] = ''
