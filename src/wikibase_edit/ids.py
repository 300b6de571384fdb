"""Entity identifiers: items, properties, lexemes, forms, senses and media infos."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import ClassVar, Optional

from . import config
from .errors import MalformedId

ET_ITEM = "item"
ET_PROPERTY = "property"
ET_LEXEME = "lexeme"
ET_FORM = "form"
ET_SENSE = "sense"
ET_MEDIAINFO = "mediainfo"


@dataclass(frozen=True)
class EntityId:
    """Canonical string id plus the site IRI it lives under.

    ``id`` is None only for placeholders, which stand for an entity the
    server has not created yet and always use ``PLACEHOLDER_SITE_IRI``.
    """

    id: Optional[str]
    site_iri: str = config.SITE_WIKIDATA

    entity_type: ClassVar[str] = ""
    prefix: ClassVar[str] = ""
    pattern: ClassVar[re.Pattern] = re.compile(r"^$")
    compound: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if self.id is None:
            if self.site_iri != config.PLACEHOLDER_SITE_IRI:
                raise MalformedId(
                    f"{type(self).__name__} requires an id; use {type(self).__name__}.placeholder() for new entities.",
                    {"site_iri": self.site_iri},
                )
            return
        if not isinstance(self.id, str) or not self.pattern.match(self.id):
            raise MalformedId(
                f"Wikibase {self.entity_type} ids must match {self.pattern.pattern!r}.",
                {"value": self.id, "entity_type": self.entity_type},
            )
        if not self.site_iri:
            raise MalformedId("Entity site IRIs cannot be empty.", {"value": self.id})

    @classmethod
    def placeholder(cls):
        return cls(None, config.PLACEHOLDER_SITE_IRI)

    @property
    def is_placeholder(self) -> bool:
        return self.id is None

    @property
    def numeric_id(self) -> Optional[int]:
        if self.id is None or self.compound:
            return None
        return int(self.id[len(self.prefix):])

    @property
    def iri(self) -> Optional[str]:
        if self.id is None:
            return None
        return self.site_iri + self.id

    def __str__(self) -> str:
        return self.id if self.id is not None else f"<new {self.entity_type}>"


@dataclass(frozen=True)
class ItemId(EntityId):
    entity_type: ClassVar[str] = ET_ITEM
    prefix: ClassVar[str] = "Q"
    pattern: ClassVar[re.Pattern] = config.ITEM_ID_PATTERN


@dataclass(frozen=True)
class PropertyId(EntityId):
    entity_type: ClassVar[str] = ET_PROPERTY
    prefix: ClassVar[str] = "P"
    pattern: ClassVar[re.Pattern] = config.PROPERTY_ID_PATTERN


@dataclass(frozen=True)
class LexemeId(EntityId):
    entity_type: ClassVar[str] = ET_LEXEME
    prefix: ClassVar[str] = "L"
    pattern: ClassVar[re.Pattern] = config.LEXEME_ID_PATTERN


@dataclass(frozen=True)
class MediaInfoId(EntityId):
    entity_type: ClassVar[str] = ET_MEDIAINFO
    prefix: ClassVar[str] = "M"
    pattern: ClassVar[re.Pattern] = config.MEDIAINFO_ID_PATTERN


class _LexemeSubEntityId(EntityId):
    compound: ClassVar[bool] = True

    @property
    def lexeme_id(self) -> LexemeId:
        if self.id is None:
            return LexemeId.placeholder()
        return LexemeId(self.id.split("-", 1)[0], self.site_iri)


@dataclass(frozen=True)
class FormId(_LexemeSubEntityId):
    entity_type: ClassVar[str] = ET_FORM
    prefix: ClassVar[str] = "L"
    pattern: ClassVar[re.Pattern] = config.FORM_ID_PATTERN


@dataclass(frozen=True)
class SenseId(_LexemeSubEntityId):
    entity_type: ClassVar[str] = ET_SENSE
    prefix: ClassVar[str] = "L"
    pattern: ClassVar[re.Pattern] = config.SENSE_ID_PATTERN


ENTITY_ID_CLASSES = {
    ET_ITEM: ItemId,
    ET_PROPERTY: PropertyId,
    ET_LEXEME: LexemeId,
    ET_FORM: FormId,
    ET_SENSE: SenseId,
    ET_MEDIAINFO: MediaInfoId,
}


def entity_id_from_numeric(entity_type, numeric_id, site_iri=config.SITE_WIKIDATA):
    """Build a simple (non-compound) entity id from its type tag and number."""
    id_class = ENTITY_ID_CLASSES.get(entity_type)
    if id_class is None:
        raise MalformedId(f"Unknown entity type {entity_type!r}.", {"entity_type": entity_type})
    if id_class.compound:
        raise MalformedId(
            f"Entities of type {entity_type!r} have no numeric id.",
            {"entity_type": entity_type, "numeric_id": numeric_id},
        )
    if isinstance(numeric_id, bool) or not isinstance(numeric_id, int) or numeric_id <= 0:
        raise MalformedId("Numeric ids must be positive integers.", {"numeric_id": numeric_id})
    return id_class(f"{id_class.prefix}{numeric_id}", site_iri)


def parse_entity_id(value, site_iri=config.SITE_WIKIDATA):
    """Return the entity id class matching the prefix of ``value``."""
    if isinstance(value, str):
        for id_class in (ItemId, PropertyId, LexemeId, FormId, SenseId, MediaInfoId):
            if id_class.pattern.match(value):
                return id_class(value, site_iri)
    raise MalformedId("Unrecognized entity id.", {"value": value})
