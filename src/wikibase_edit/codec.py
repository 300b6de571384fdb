"""Exact JSON wire format for documents, statements and updates."""

from __future__ import annotations

import json
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from . import config
from .documents import (
    FormDocument,
    ItemDocument,
    LexemeDocument,
    MediaInfoDocument,
    PropertyDocument,
    SenseDocument,
    SiteLink,
)
from .errors import InconsistentId, UnsupportedWireType, WireDecodeError
from .ids import (
    ENTITY_ID_CLASSES,
    EntityId,
    FormId,
    ItemId,
    LexemeId,
    MediaInfoId,
    PropertyId,
    SenseId,
    entity_id_from_numeric,
    parse_entity_id,
)
from .updates import (
    AliasUpdate,
    FormUpdate,
    ItemUpdate,
    LexemeUpdate,
    MediaInfoUpdate,
    PropertyUpdate,
    SenseUpdate,
    StatementUpdate,
    TermUpdate,
)
from .values import (
    GlobeCoordinatesValue,
    MonolingualTextValue,
    NoValueSnak,
    QuantityValue,
    Reference,
    SomeValueSnak,
    Statement,
    StatementRank,
    StringValue,
    Term,
    TimeValue,
    ValueSnak,
    group_snaks,
)

DOCUMENT_TYPES = {
    "item": ItemDocument,
    "property": PropertyDocument,
    "lexeme": LexemeDocument,
    "form": FormDocument,
    "sense": SenseDocument,
    "mediainfo": MediaInfoDocument,
}

DOCUMENT_ID_CLASSES = {
    ItemDocument: ItemId,
    PropertyDocument: PropertyId,
    LexemeDocument: LexemeId,
    FormDocument: FormId,
    SenseDocument: SenseId,
    MediaInfoDocument: MediaInfoId,
}


def dumps(obj: Any) -> str:
    """Compact JSON as sent in API form parameters."""
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


def _signed(amount: Decimal) -> str:
    text = format(amount, "f")
    return text if text.startswith("-") else "+" + text


def _decimal(raw: Any, field_name: str) -> Decimal:
    try:
        return Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise WireDecodeError(f"Invalid decimal in {field_name!r}.", {"value": raw}) from exc


def _require(obj: Any, key: str, where: str) -> Any:
    if not isinstance(obj, dict) or key not in obj:
        raise WireDecodeError(f"Missing {key!r} in {where}.", {"object": obj})
    return obj[key]


def _as_object(entry: Any, where: str) -> dict:
    if not isinstance(entry, dict):
        raise WireDecodeError(f"Expected an object in {where}.", {"value": entry})
    return entry


def _as_map(raw: Any, where: str) -> dict:
    """Maps may come back as ``[]`` when empty on the server side."""
    if raw is None or raw == []:
        return {}
    if not isinstance(raw, dict):
        raise WireDecodeError(f"Expected an object for {where}.", {"value": raw})
    return raw


class WireCodec:
    """Encode and decode the Wikibase JSON serialization.

    Decoded entity ids are bound to ``site_iri``.
    """

    def __init__(self, site_iri: str = config.SITE_WIKIDATA):
        self.site_iri = site_iri

    # -- entity ids ---------------------------------------------------------

    def encode_entity_id(self, entity_id: EntityId) -> dict:
        out = {"entity-type": entity_id.entity_type}
        if entity_id.numeric_id is not None:
            out["numeric-id"] = entity_id.numeric_id
        out["id"] = entity_id.id
        return out

    def decode_entity_id(self, obj: dict) -> EntityId:
        if not isinstance(obj, dict):
            raise WireDecodeError("Entity id values must be objects.", {"value": obj})
        entity_type = obj.get("entity-type")
        numeric_id = obj.get("numeric-id")
        raw_id = obj.get("id")
        if entity_type is not None and entity_type not in ENTITY_ID_CLASSES:
            raise UnsupportedWireType(f"Unknown entity type {entity_type!r}.", {"value": obj})
        if raw_id is None:
            if entity_type is None or numeric_id is None:
                raise WireDecodeError("Entity id values need an id or an entity-type with numeric-id.", {"value": obj})
            return entity_id_from_numeric(entity_type, numeric_id, self.site_iri)
        entity_id = parse_entity_id(raw_id, self.site_iri)
        if entity_type is not None and entity_type != entity_id.entity_type:
            raise InconsistentId(
                f"Id {raw_id!r} is not of entity type {entity_type!r}.",
                {"id": raw_id, "entity-type": entity_type},
            )
        if numeric_id is not None and numeric_id != entity_id.numeric_id:
            raise InconsistentId(
                f"Id {raw_id!r} does not match numeric id {numeric_id!r}.",
                {"id": raw_id, "numeric-id": numeric_id},
            )
        return entity_id

    # -- datavalues ---------------------------------------------------------

    def encode_value(self, value) -> dict:
        if isinstance(value, EntityId):
            return {"value": self.encode_entity_id(value), "type": "wikibase-entityid"}
        if isinstance(value, StringValue):
            return {"value": value.string, "type": "string"}
        if isinstance(value, MonolingualTextValue):
            return {"value": {"text": value.text, "language": value.language}, "type": "monolingualtext"}
        if isinstance(value, QuantityValue):
            inner = {"amount": _signed(value.amount), "unit": value.unit}
            if value.lower_bound is not None:
                inner["upperBound"] = _signed(value.upper_bound)
                inner["lowerBound"] = _signed(value.lower_bound)
            return {"value": inner, "type": "quantity"}
        if isinstance(value, TimeValue):
            inner = {
                "time": value.time,
                "timezone": value.timezone,
                "before": value.before,
                "after": value.after,
                "precision": value.precision,
                "calendarmodel": value.calendar_model,
            }
            return {"value": inner, "type": "time"}
        if isinstance(value, GlobeCoordinatesValue):
            inner = {"latitude": value.latitude, "longitude": value.longitude}
            if value.precision is not None:
                inner["precision"] = value.precision
            inner["globe"] = value.globe
            return {"value": inner, "type": "globecoordinate"}
        raise TypeError(f"Cannot encode value {value!r}")

    def decode_value(self, obj: dict):
        value_type = _require(obj, "type", "datavalue")
        inner = _require(obj, "value", "datavalue")
        if value_type == "wikibase-entityid":
            return self.decode_entity_id(inner)
        if value_type == "string":
            return StringValue(inner)
        if value_type == "monolingualtext":
            return MonolingualTextValue(
                _require(inner, "text", "monolingualtext"), _require(inner, "language", "monolingualtext")
            )
        if value_type == "quantity":
            lower = inner.get("lowerBound")
            upper = inner.get("upperBound")
            return QuantityValue(
                _decimal(_require(inner, "amount", "quantity"), "amount"),
                None if lower is None else _decimal(lower, "lowerBound"),
                None if upper is None else _decimal(upper, "upperBound"),
                inner.get("unit", config.QUANTITY_UNIT_NONE),
            )
        if value_type == "time":
            return TimeValue(
                _require(inner, "time", "time"),
                precision=inner.get("precision", 11),
                timezone=inner.get("timezone", 0),
                before=inner.get("before", 0),
                after=inner.get("after", 0),
                calendar_model=inner.get("calendarmodel", config.CALENDAR_GREGORIAN),
            )
        if value_type == "globecoordinate":
            return GlobeCoordinatesValue(
                _require(inner, "latitude", "globecoordinate"),
                _require(inner, "longitude", "globecoordinate"),
                inner.get("precision"),
                inner.get("globe", config.GLOBE_EARTH),
            )
        raise UnsupportedWireType(f"Unsupported datavalue type {value_type!r}.", {"type": value_type})

    # -- snaks --------------------------------------------------------------

    def encode_snak(self, snak) -> dict:
        if isinstance(snak, ValueSnak):
            out = {"snaktype": "value", "property": snak.property.id, "datavalue": self.encode_value(snak.value)}
            if snak.datatype:
                out["datatype"] = snak.datatype
            return out
        if isinstance(snak, SomeValueSnak):
            return {"snaktype": "somevalue", "property": snak.property.id}
        if isinstance(snak, NoValueSnak):
            return {"snaktype": "novalue", "property": snak.property.id}
        raise TypeError(f"Cannot encode snak {snak!r}")

    def decode_snak(self, obj: dict):
        snak_type = _require(obj, "snaktype", "snak")
        property_id = PropertyId(_require(obj, "property", "snak"), self.site_iri)
        if snak_type == "value":
            return ValueSnak(property_id, self.decode_value(_require(obj, "datavalue", "snak")), obj.get("datatype"))
        if snak_type == "somevalue":
            return SomeValueSnak(property_id)
        if snak_type == "novalue":
            return NoValueSnak(property_id)
        raise UnsupportedWireType(f"Unsupported snak type {snak_type!r}.", {"snaktype": snak_type})

    def encode_snak_groups(self, groups) -> dict:
        return {group.property.id: [self.encode_snak(snak) for snak in group.snaks] for group in groups}

    def decode_snak_groups(self, raw: Any, where: str) -> tuple:
        snaks = []
        for entries in _as_map(raw, where).values():
            snaks.extend(self.decode_snak(entry) for entry in entries)
        return group_snaks(snaks)

    # -- statements ---------------------------------------------------------

    def encode_statement(self, statement: Statement) -> dict:
        out = {}
        if statement.statement_id:
            out["id"] = statement.statement_id
        out["rank"] = statement.rank.value
        out["mainsnak"] = self.encode_snak(statement.main_snak)
        if statement.qualifiers:
            out["qualifiers"] = self.encode_snak_groups(statement.qualifiers)
        if statement.references:
            out["references"] = [{"snaks": self.encode_snak_groups(ref.snak_groups)} for ref in statement.references]
        out["type"] = "statement"
        return out

    def decode_statement(self, obj: dict, subject: Optional[EntityId] = None) -> Statement:
        """Decode one statement; without ``subject`` it is read from the id prefix."""
        if not isinstance(obj, dict):
            raise WireDecodeError("Statements must be objects.", {"value": obj})
        statement_type = obj.get("type", "statement")
        if statement_type not in ("statement", "claim"):
            raise UnsupportedWireType(f"Unsupported statement type {statement_type!r}.", {"type": statement_type})
        statement_id = obj.get("id") or None
        if subject is None:
            if statement_id is None or "$" not in statement_id:
                raise WireDecodeError("Cannot tell the subject of a statement without id.", {"value": obj})
            subject = parse_entity_id(statement_id.split("$", 1)[0].upper(), self.site_iri)
        rank = obj.get("rank", StatementRank.NORMAL.value)
        try:
            rank = StatementRank(rank)
        except ValueError as exc:
            raise UnsupportedWireType(f"Unsupported statement rank {rank!r}.", {"rank": rank}) from exc
        references = tuple(
            Reference(self.decode_snak_groups(_require(ref, "snaks", "reference"), "reference snaks"))
            for ref in obj.get("references") or ()
        )
        return Statement(
            subject,
            self.decode_snak(_require(obj, "mainsnak", "statement")),
            qualifiers=self.decode_snak_groups(obj.get("qualifiers"), "qualifiers"),
            references=references,
            rank=rank,
            statement_id=statement_id,
        )

    def encode_statements(self, statements) -> dict:
        return {pid: [self.encode_statement(s) for s in group] for pid, group in statements.items()}

    def decode_statements(self, raw: Any, subject: EntityId) -> list:
        out = []
        for entries in _as_map(raw, "claims").values():
            out.extend(self.decode_statement(entry, subject) for entry in entries)
        return out

    # -- terms and site links -----------------------------------------------

    @staticmethod
    def encode_term(term) -> dict:
        return {"language": term.language, "value": term.text}

    def encode_terms(self, terms) -> dict:
        return {language: self.encode_term(term) for language, term in terms.items()}

    @staticmethod
    def decode_terms(raw: Any, where: str) -> list:
        out = []
        for language, entry in _as_map(raw, where).items():
            entry = _as_object(entry, where)
            out.append(Term(entry.get("language", language), _require(entry, "value", where)))
        return out

    def encode_aliases(self, aliases) -> dict:
        return {language: [self.encode_term(t) for t in terms] for language, terms in aliases.items()}

    @staticmethod
    def decode_aliases(raw: Any) -> list:
        out = []
        for language, entries in _as_map(raw, "aliases").items():
            if not isinstance(entries, list):
                raise WireDecodeError("Expected a list of aliases.", {"language": language, "value": entries})
            for entry in entries:
                entry = _as_object(entry, "aliases")
                out.append(Term(entry.get("language", language), _require(entry, "value", "aliases")))
        return out

    def encode_sitelink(self, sitelink: SiteLink) -> dict:
        return {"site": sitelink.site_key, "title": sitelink.page_title, "badges": [b.id for b in sitelink.badges]}

    def decode_sitelinks(self, raw: Any) -> list:
        out = []
        for site_key, entry in _as_map(raw, "sitelinks").items():
            entry = _as_object(entry, "sitelinks")
            badges = [ItemId(badge, self.site_iri) for badge in entry.get("badges") or ()]
            out.append(SiteLink(entry.get("site", site_key), _require(entry, "title", "sitelink"), tuple(badges)))
        return out

    # -- documents ----------------------------------------------------------

    def encode_document(self, document) -> dict:
        type_name = next(name for name, cls in DOCUMENT_TYPES.items() if isinstance(document, cls))
        out = {"type": type_name}
        if not document.entity_id.is_placeholder:
            out["id"] = document.entity_id.id
        if isinstance(document, ItemDocument):
            out["labels"] = self.encode_terms(document.labels)
            out["descriptions"] = self.encode_terms(document.descriptions)
            out["aliases"] = self.encode_aliases(document.aliases)
            out["claims"] = self.encode_statements(document.statements)
            out["sitelinks"] = {key: self.encode_sitelink(link) for key, link in document.sitelinks.items()}
        elif isinstance(document, PropertyDocument):
            out["datatype"] = document.datatype
            out["labels"] = self.encode_terms(document.labels)
            out["descriptions"] = self.encode_terms(document.descriptions)
            out["aliases"] = self.encode_aliases(document.aliases)
            out["claims"] = self.encode_statements(document.statements)
        elif isinstance(document, LexemeDocument):
            out["lemmas"] = self.encode_terms(document.lemmas)
            if not document.lexical_category.is_placeholder:
                out["lexicalCategory"] = document.lexical_category.id
            if not document.language.is_placeholder:
                out["language"] = document.language.id
            out["claims"] = self.encode_statements(document.statements)
            out["forms"] = [self.encode_document(form) for form in document.forms]
            out["senses"] = [self.encode_document(sense) for sense in document.senses]
        elif isinstance(document, FormDocument):
            out["representations"] = self.encode_terms(document.representations)
            out["grammaticalFeatures"] = [feature.id for feature in document.grammatical_features]
            out["claims"] = self.encode_statements(document.statements)
        elif isinstance(document, SenseDocument):
            out["glosses"] = self.encode_terms(document.glosses)
            out["claims"] = self.encode_statements(document.statements)
        elif isinstance(document, MediaInfoDocument):
            out["labels"] = self.encode_terms(document.labels)
            out["statements"] = self.encode_statements(document.statements)
        if document.revision_id:
            out["lastrevid"] = document.revision_id
        return out

    def decode_document(self, obj: dict):
        if not isinstance(obj, dict):
            raise WireDecodeError("Entity documents must be objects.", {"value": obj})
        type_name = _require(obj, "type", "entity document")
        document_class = DOCUMENT_TYPES.get(type_name)
        if document_class is None:
            raise UnsupportedWireType(f"Unsupported entity type {type_name!r}.", {"type": type_name})
        id_class = DOCUMENT_ID_CLASSES[document_class]
        raw_id = obj.get("id")
        if raw_id is None:
            entity_id = id_class.placeholder()
        else:
            entity_id = parse_entity_id(raw_id, self.site_iri)
            if not isinstance(entity_id, id_class):
                raise InconsistentId(
                    f"Id {raw_id!r} does not belong to a {type_name} document.",
                    {"id": raw_id, "type": type_name},
                )
        revision_id = obj.get("lastrevid", 0)
        if document_class is MediaInfoDocument:
            raw_statements = obj.get("statements", obj.get("claims"))
        else:
            raw_statements = obj.get("claims")
        statements = self.decode_statements(raw_statements, entity_id)

        if document_class is ItemDocument:
            return ItemDocument(
                entity_id,
                labels=self.decode_terms(obj.get("labels"), "labels"),
                descriptions=self.decode_terms(obj.get("descriptions"), "descriptions"),
                aliases=self.decode_aliases(obj.get("aliases")),
                statements=statements,
                sitelinks=self.decode_sitelinks(obj.get("sitelinks")),
                revision_id=revision_id,
            )
        if document_class is PropertyDocument:
            return PropertyDocument(
                entity_id,
                datatype=_require(obj, "datatype", "property document"),
                labels=self.decode_terms(obj.get("labels"), "labels"),
                descriptions=self.decode_terms(obj.get("descriptions"), "descriptions"),
                aliases=self.decode_aliases(obj.get("aliases")),
                statements=statements,
                revision_id=revision_id,
            )
        if document_class is LexemeDocument:
            category = obj.get("lexicalCategory")
            language = obj.get("language")
            forms = [self._decode_sub_document(form, FormDocument) for form in obj.get("forms") or ()]
            senses = [self._decode_sub_document(sense, SenseDocument) for sense in obj.get("senses") or ()]
            return LexemeDocument(
                entity_id,
                lexical_category=ItemId(category, self.site_iri) if category else ItemId.placeholder(),
                language=ItemId(language, self.site_iri) if language else ItemId.placeholder(),
                lemmas=self.decode_terms(obj.get("lemmas"), "lemmas"),
                statements=statements,
                forms=forms,
                senses=senses,
                revision_id=revision_id,
            )
        if document_class is FormDocument:
            return FormDocument(
                entity_id,
                representations=self.decode_terms(obj.get("representations"), "representations"),
                grammatical_features=[ItemId(f, self.site_iri) for f in obj.get("grammaticalFeatures") or ()],
                statements=statements,
                revision_id=revision_id,
            )
        if document_class is SenseDocument:
            return SenseDocument(
                entity_id,
                glosses=self.decode_terms(obj.get("glosses"), "glosses"),
                statements=statements,
                revision_id=revision_id,
            )
        return MediaInfoDocument(
            entity_id,
            labels=self.decode_terms(obj.get("labels"), "labels"),
            statements=statements,
            revision_id=revision_id,
        )

    def _decode_sub_document(self, obj: Any, document_class):
        # forms and senses nested in a lexeme may omit their type tag
        if isinstance(obj, dict) and "type" not in obj:
            obj = dict(obj, type="form" if document_class is FormDocument else "sense")
        document = self.decode_document(obj)
        if not isinstance(document, document_class):
            raise InconsistentId(f"Expected a {document_class.__name__} inside a lexeme.", {"value": obj})
        return document

    # -- updates ------------------------------------------------------------

    def encode_term_update(self, update: TermUpdate) -> dict:
        out = {language: self.encode_term(term) for language, term in update.modified.items()}
        for language in sorted(update.removed):
            out[language] = {"language": language, "remove": ""}
        return out

    def encode_alias_update(self, update: AliasUpdate):
        if update.recreated is not None:
            return [self.encode_term(term) for term in update.recreated]
        out = [dict(self.encode_term(term), add="") for term in update.added]
        out.extend(dict(self.encode_term(term), remove="") for term in update.removed)
        return out

    def encode_statement_update(self, update: StatementUpdate) -> list:
        out = [self.encode_statement(statement) for statement in update.added]
        out.extend(self.encode_statement(statement) for statement in update.replaced.values())
        out.extend({"id": statement_id, "remove": ""} for statement_id in update.removed)
        return out

    def encode_update(self, update) -> dict:
        """Encode an update as the ``data`` patch of an edit-entity call."""
        out = {}
        if isinstance(update, (ItemUpdate, PropertyUpdate, MediaInfoUpdate)):
            if not update.labels.is_empty:
                out["labels"] = self.encode_term_update(update.labels)
        if isinstance(update, (ItemUpdate, PropertyUpdate)):
            if not update.descriptions.is_empty:
                out["descriptions"] = self.encode_term_update(update.descriptions)
            if update.aliases:
                out["aliases"] = {lang: self.encode_alias_update(a) for lang, a in update.aliases.items()}
        if isinstance(update, LexemeUpdate):
            if not update.lemmas.is_empty:
                out["lemmas"] = self.encode_term_update(update.lemmas)
            if update.lexical_category is not None:
                out["lexicalCategory"] = update.lexical_category.id
            if update.language is not None:
                out["language"] = update.language.id
        if isinstance(update, FormUpdate):
            if not update.representations.is_empty:
                out["representations"] = self.encode_term_update(update.representations)
            if update.grammatical_features is not None:
                out["grammaticalFeatures"] = [feature.id for feature in update.grammatical_features]
        if isinstance(update, SenseUpdate) and not update.glosses.is_empty:
            out["glosses"] = self.encode_term_update(update.glosses)
        if not update.statements.is_empty:
            key = "statements" if isinstance(update, MediaInfoUpdate) else "claims"
            out[key] = self.encode_statement_update(update.statements)
        if isinstance(update, ItemUpdate) and (update.modified_sitelinks or update.removed_sitelinks):
            sitelinks = {key: self.encode_sitelink(link) for key, link in update.modified_sitelinks.items()}
            for site_key in sorted(update.removed_sitelinks):
                sitelinks[site_key] = {"site": site_key, "remove": ""}
            out["sitelinks"] = sitelinks
        if isinstance(update, LexemeUpdate):
            forms = self._encode_sub_updates(update.added_forms, update.updated_forms, update.removed_forms)
            if forms:
                out["forms"] = forms
            senses = self._encode_sub_updates(update.added_senses, update.updated_senses, update.removed_senses)
            if senses:
                out["senses"] = senses
        return out

    def _encode_sub_updates(self, added, updated, removed) -> list:
        out = []
        for document in added:
            encoded = self.encode_document(document)
            encoded.pop("type", None)
            encoded["add"] = ""
            out.append(encoded)
        for sub_id, sub_update in updated.items():
            out.append(dict({"id": sub_id.id}, **self.encode_update(sub_update)))
        for sub_id in sorted(removed, key=lambda entity_id: entity_id.id):
            out.append({"id": sub_id.id, "remove": ""})
        return out
