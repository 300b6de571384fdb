"""Datavalues, snaks, statements and statement groups."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Optional, Union

from . import config
from .errors import InvalidStatementGroup, MalformedId
from .ids import EntityId, PropertyId


class FrozenMap(Mapping):
    """Immutable, hashable mapping that remembers insertion order.

    Equality ignores order, like ``dict``; iteration and serialization use it.
    """

    __slots__ = ("_data", "_hash")

    def __init__(self, items=None):
        if isinstance(items, Mapping):
            items = items.items()
        self._data = dict(items or ())
        self._hash = None

    def __getitem__(self, key):
        return self._data[key]

    def __iter__(self):
        return iter(self._data)

    def __len__(self):
        return len(self._data)

    def __eq__(self, other):
        if isinstance(other, FrozenMap):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __hash__(self):
        if self._hash is None:
            self._hash = hash(frozenset(self._data.items()))
        return self._hash

    def __repr__(self):
        return f"FrozenMap({self._data!r})"

    def set(self, key, value):
        data = dict(self._data)
        data[key] = value
        return FrozenMap(data)

    def delete(self, key):
        if key not in self._data:
            return self
        return FrozenMap((k, v) for k, v in self._data.items() if k != key)


EMPTY_MAP = FrozenMap()


@dataclass(frozen=True)
class Term:
    language: str
    text: str

    def __post_init__(self) -> None:
        if not self.language:
            raise ValueError("Term language codes cannot be empty.")
        if self.text is None:
            raise ValueError("Term text cannot be None.")


def term_map(terms: Optional[Iterable[Term]]) -> FrozenMap:
    """Index terms by language; a later term for the same language wins."""
    if terms is None:
        return EMPTY_MAP
    if isinstance(terms, Mapping):
        terms = terms.values()
    return FrozenMap((term.language, term) for term in terms)


@dataclass(frozen=True)
class StringValue:
    string: str


@dataclass(frozen=True)
class MonolingualTextValue:
    text: str
    language: str

    def to_term(self) -> Term:
        return Term(self.language, self.text)


@dataclass(frozen=True)
class QuantityValue:
    amount: Decimal
    lower_bound: Optional[Decimal] = None
    upper_bound: Optional[Decimal] = None
    unit: str = config.QUANTITY_UNIT_NONE

    def __post_init__(self) -> None:
        for name in ("amount", "lower_bound", "upper_bound"):
            raw = getattr(self, name)
            if raw is not None and not isinstance(raw, Decimal):
                object.__setattr__(self, name, Decimal(str(raw)))
        if (self.lower_bound is None) != (self.upper_bound is None):
            raise ValueError("Quantity bounds must be given together or not at all.")


@dataclass(frozen=True)
class TimeValue:
    time: str
    precision: int = 11
    timezone: int = 0
    before: int = 0
    after: int = 0
    calendar_model: str = config.CALENDAR_GREGORIAN


@dataclass(frozen=True)
class GlobeCoordinatesValue:
    latitude: float
    longitude: float
    precision: Optional[float] = None
    globe: str = config.GLOBE_EARTH


Value = Union[EntityId, StringValue, MonolingualTextValue, QuantityValue, TimeValue, GlobeCoordinatesValue]
VALUE_TYPES = (EntityId, StringValue, MonolingualTextValue, QuantityValue, TimeValue, GlobeCoordinatesValue)


@dataclass(frozen=True)
class NoValueSnak:
    property: PropertyId


@dataclass(frozen=True)
class SomeValueSnak:
    property: PropertyId


@dataclass(frozen=True)
class ValueSnak:
    property: PropertyId
    value: Value
    datatype: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.value, VALUE_TYPES):
            raise TypeError(f"Unsupported snak value {self.value!r}.")


Snak = Union[NoValueSnak, SomeValueSnak, ValueSnak]
SNAK_TYPES = (NoValueSnak, SomeValueSnak, ValueSnak)


@dataclass(frozen=True)
class SnakGroup:
    property: PropertyId
    snaks: tuple

    def __post_init__(self) -> None:
        snaks = tuple(self.snaks)
        if not snaks:
            raise ValueError("Snak groups cannot be empty.")
        if any(snak.property != self.property for snak in snaks):
            raise ValueError(f"All snaks of a group must use {self.property}.")
        object.__setattr__(self, "snaks", snaks)


def group_snaks(snaks: Iterable[Snak]) -> tuple:
    """Group snaks by property, keeping first-seen property order."""
    grouped: dict[PropertyId, list] = {}
    for snak in snaks:
        grouped.setdefault(snak.property, []).append(snak)
    return tuple(SnakGroup(pid, tuple(items)) for pid, items in grouped.items())


def regroup_snaks(entries: Iterable, where: str) -> tuple:
    """Flatten snaks and snak groups, then group them again by property."""
    snaks = []
    for entry in entries:
        if isinstance(entry, SnakGroup):
            snaks.extend(entry.snaks)
        elif isinstance(entry, SNAK_TYPES):
            snaks.append(entry)
        else:
            raise TypeError(f"{where} must hold snaks or snak groups, not {entry!r}.")
    return group_snaks(snaks)


@dataclass(frozen=True)
class Reference:
    snak_groups: tuple = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "snak_groups", regroup_snaks(self.snak_groups, "References"))


class StatementRank(str, Enum):
    PREFERRED = "preferred"
    NORMAL = "normal"
    DEPRECATED = "deprecated"


@dataclass(frozen=True)
class Statement:
    """A main snak with qualifiers, references and rank, about ``subject``.

    Statements without ``statement_id`` are drafts that the server has not
    stored yet.
    """

    subject: EntityId
    main_snak: Snak
    qualifiers: tuple = ()
    references: tuple = ()
    rank: StatementRank = StatementRank.NORMAL
    statement_id: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "qualifiers", regroup_snaks(self.qualifiers, "Qualifiers"))
        object.__setattr__(self, "references", tuple(self.references))
        object.__setattr__(self, "rank", StatementRank(self.rank))
        if self.statement_id == "":
            object.__setattr__(self, "statement_id", None)
        if self.statement_id is not None and not config.STATEMENT_ID_PATTERN.match(self.statement_id):
            raise MalformedId(
                "Statement ids must have the form <subject>$<token>.",
                {"value": self.statement_id},
            )

    @property
    def value(self) -> Optional[Value]:
        return getattr(self.main_snak, "value", None)

    @property
    def is_draft(self) -> bool:
        return self.statement_id is None

    def same_claim(self, other: "Statement") -> bool:
        """True when both statements assert the same thing, ignoring id, rank and references."""
        return (
            self.subject == other.subject
            and self.main_snak == other.main_snak
            and self.qualifiers == other.qualifiers
        )

    def with_statement_id(self, statement_id: Optional[str]) -> "Statement":
        return replace(self, statement_id=statement_id)

    def with_subject(self, subject: EntityId) -> "Statement":
        return replace(self, subject=subject)

    def with_rank(self, rank: StatementRank) -> "Statement":
        return replace(self, rank=rank)

    # Defined last: the name shadows the builtin decorator for the rest of the body.
    @property
    def property(self) -> PropertyId:
        return self.main_snak.property


@dataclass(frozen=True)
class StatementGroup:
    statements: tuple = field(default=())

    def __post_init__(self) -> None:
        statements = tuple(self.statements)
        if not statements:
            raise InvalidStatementGroup("Statement groups cannot be empty.")
        first = statements[0]
        for statement in statements[1:]:
            if statement.property != first.property:
                raise InvalidStatementGroup(
                    "All statements of a group must share the main snak property.",
                    {"expected": first.property.id, "found": statement.property.id},
                )
            if statement.subject != first.subject:
                raise InvalidStatementGroup(
                    "All statements of a group must share the subject.",
                    {"expected": str(first.subject), "found": str(statement.subject)},
                )
        object.__setattr__(self, "statements", statements)

    @property
    def subject(self) -> EntityId:
        return self.statements[0].subject

    def __iter__(self):
        return iter(self.statements)

    def __len__(self):
        return len(self.statements)

    @property
    def property(self) -> PropertyId:
        return self.statements[0].property


def group_statements(statements: Iterable[Statement]) -> tuple:
    """Derive ordered statement groups, one per main snak property."""
    grouped: dict[PropertyId, list] = {}
    for statement in statements:
        grouped.setdefault(statement.property, []).append(statement)
    return tuple(StatementGroup(tuple(items)) for items in grouped.values())


def statement_map(statements: Any) -> FrozenMap:
    """Normalize groups, a mapping, or loose statements into property id -> StatementGroup."""
    if statements is None:
        return EMPTY_MAP
    if isinstance(statements, Mapping):
        statements = statements.values()
    flat = []
    for entry in statements:
        if isinstance(entry, StatementGroup):
            flat.extend(entry.statements)
        else:
            flat.append(entry)
    return FrozenMap((group.property.id, group) for group in group_statements(flat))
