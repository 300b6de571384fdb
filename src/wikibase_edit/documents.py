"""Immutable entity documents and their derivation methods."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field, replace
from typing import Iterable, Optional

from .errors import InvalidStatementGroup
from .ids import EntityId, FormId, ItemId, LexemeId, MediaInfoId, PropertyId, SenseId
from .values import EMPTY_MAP, FrozenMap, Statement, StatementGroup, Term, statement_map, term_map


@dataclass(frozen=True)
class SiteLink:
    site_key: str
    page_title: str
    badges: tuple = ()

    def __post_init__(self) -> None:
        badges = sorted(set(self.badges), key=lambda badge: badge.id or "")
        object.__setattr__(self, "badges", tuple(badges))


def alias_map(aliases) -> FrozenMap:
    """Index aliases by language; duplicates are dropped, first occurrence kept."""
    if aliases is None:
        return EMPTY_MAP
    grouped: dict[str, list] = {}
    if isinstance(aliases, Mapping):
        items = ((lang, term) for lang, terms in aliases.items() for term in terms)
    else:
        items = ((term.language, term) for term in aliases)
    for language, term in items:
        bucket = grouped.setdefault(language, [])
        if term not in bucket:
            bucket.append(term)
    return FrozenMap((lang, tuple(terms)) for lang, terms in grouped.items() if terms)


def _check_subjects(entity_id: EntityId, statements: FrozenMap) -> None:
    for group in statements.values():
        if group.subject != entity_id:
            raise InvalidStatementGroup(
                "Statement groups must use the document's entity id as subject.",
                {"document": str(entity_id), "subject": str(group.subject), "property": group.property.id},
            )


def sorted_ids(ids) -> tuple:
    unique = {entity_id: None for entity_id in ids or ()}
    return tuple(sorted(unique, key=lambda entity_id: (entity_id.numeric_id or 0, entity_id.id or "")))


class _StatementDocument:
    """Statement lookups and derivations shared by every document kind."""

    def all_statements(self):
        for group in self.statements.values():
            yield from group.statements

    def find_statement(self, statement_id: str) -> Optional[Statement]:
        for statement in self.all_statements():
            if statement.statement_id == statement_id:
                return statement
        return None

    def find_statement_group(self, property_id) -> Optional[StatementGroup]:
        key = property_id if isinstance(property_id, str) else property_id.id
        return self.statements.get(key)

    def has_statement_value(self, property_id, value) -> bool:
        group = self.find_statement_group(property_id)
        if group is None:
            return False
        return any(statement.value == value for statement in group)

    def with_statement(self, statement: Statement):
        """Add a statement, replacing the one with the same id if present."""
        if statement.subject != self.entity_id:
            statement = statement.with_subject(self.entity_id)
        statements = list(self.all_statements())
        if statement.statement_id is not None:
            for idx, existing in enumerate(statements):
                if existing.statement_id == statement.statement_id:
                    statements[idx] = statement
                    break
            else:
                statements.append(statement)
        else:
            statements.append(statement)
        return replace(self, statements=statement_map(_keep_group_order(self.statements, statements)))

    def without_statement_ids(self, statement_ids: Iterable[str]):
        removed = set(statement_ids)
        kept = [s for s in self.all_statements() if s.statement_id is None or s.statement_id not in removed]
        return replace(self, statements=statement_map(kept))

    def with_revision_id(self, revision_id: int):
        return replace(self, revision_id=revision_id)

    def with_entity_id(self, entity_id: EntityId):
        renamed = [statement.with_subject(entity_id) for statement in self.all_statements()]
        return replace(self, entity_id=entity_id, statements=statement_map(renamed))


def _keep_group_order(groups: FrozenMap, statements: list) -> list:
    """Order statements so existing groups keep their position."""
    order = {pid: idx for idx, pid in enumerate(groups)}
    return sorted(statements, key=lambda s: order.get(s.property.id, len(order)))


class _LabelledDocument:
    def with_label(self, term: Term):
        return replace(self, labels=self.labels.set(term.language, term))

    def without_label(self, language: str):
        return replace(self, labels=self.labels.delete(language))


class _TermedDocument(_LabelledDocument):
    def with_description(self, term: Term):
        return replace(self, descriptions=self.descriptions.set(term.language, term))

    def without_description(self, language: str):
        return replace(self, descriptions=self.descriptions.delete(language))

    def with_aliases(self, language: str, terms: Iterable[Term]):
        terms = [term for term in terms if term.language == language]
        if not terms:
            return replace(self, aliases=self.aliases.delete(language))
        return replace(self, aliases=self.aliases.set(language, alias_map(terms)[language]))


def _normalize_common(doc) -> None:
    object.__setattr__(doc, "statements", statement_map(doc.statements))
    object.__setattr__(doc, "revision_id", int(doc.revision_id or 0))
    _check_subjects(doc.entity_id, doc.statements)


def _normalize_terms(doc, *names: str) -> None:
    for name in names:
        object.__setattr__(doc, name, term_map(getattr(doc, name)))


@dataclass(frozen=True)
class ItemDocument(_TermedDocument, _StatementDocument):
    entity_id: ItemId
    labels: FrozenMap = field(default=EMPTY_MAP)
    descriptions: FrozenMap = field(default=EMPTY_MAP)
    aliases: FrozenMap = field(default=EMPTY_MAP)
    statements: FrozenMap = field(default=EMPTY_MAP)
    sitelinks: FrozenMap = field(default=EMPTY_MAP)
    revision_id: int = 0

    def __post_init__(self) -> None:
        _normalize_terms(self, "labels", "descriptions")
        object.__setattr__(self, "aliases", alias_map(self.aliases))
        sitelinks = self.sitelinks
        if not isinstance(sitelinks, Mapping):
            sitelinks = {link.site_key: link for link in sitelinks or ()}
        object.__setattr__(self, "sitelinks", FrozenMap(sitelinks))
        _normalize_common(self)

    def with_sitelink(self, sitelink: SiteLink) -> "ItemDocument":
        return replace(self, sitelinks=self.sitelinks.set(sitelink.site_key, sitelink))

    def without_sitelink(self, site_key: str) -> "ItemDocument":
        return replace(self, sitelinks=self.sitelinks.delete(site_key))


@dataclass(frozen=True)
class PropertyDocument(_TermedDocument, _StatementDocument):
    entity_id: PropertyId
    datatype: str = "wikibase-item"
    labels: FrozenMap = field(default=EMPTY_MAP)
    descriptions: FrozenMap = field(default=EMPTY_MAP)
    aliases: FrozenMap = field(default=EMPTY_MAP)
    statements: FrozenMap = field(default=EMPTY_MAP)
    revision_id: int = 0

    def __post_init__(self) -> None:
        _normalize_terms(self, "labels", "descriptions")
        object.__setattr__(self, "aliases", alias_map(self.aliases))
        _normalize_common(self)


@dataclass(frozen=True)
class FormDocument(_StatementDocument):
    entity_id: FormId
    representations: FrozenMap = field(default=EMPTY_MAP)
    grammatical_features: tuple = ()
    statements: FrozenMap = field(default=EMPTY_MAP)
    revision_id: int = 0

    def __post_init__(self) -> None:
        _normalize_terms(self, "representations")
        object.__setattr__(self, "grammatical_features", sorted_ids(self.grammatical_features))
        _normalize_common(self)

    def with_representation(self, term: Term) -> "FormDocument":
        return replace(self, representations=self.representations.set(term.language, term))

    def without_representation(self, language: str) -> "FormDocument":
        return replace(self, representations=self.representations.delete(language))

    def with_grammatical_feature(self, feature: ItemId) -> "FormDocument":
        if feature in self.grammatical_features:
            return self
        return replace(self, grammatical_features=self.grammatical_features + (feature,))


@dataclass(frozen=True)
class SenseDocument(_StatementDocument):
    entity_id: SenseId
    glosses: FrozenMap = field(default=EMPTY_MAP)
    statements: FrozenMap = field(default=EMPTY_MAP)
    revision_id: int = 0

    def __post_init__(self) -> None:
        _normalize_terms(self, "glosses")
        _normalize_common(self)

    def with_gloss(self, term: Term) -> "SenseDocument":
        return replace(self, glosses=self.glosses.set(term.language, term))

    def without_gloss(self, language: str) -> "SenseDocument":
        return replace(self, glosses=self.glosses.delete(language))


@dataclass(frozen=True)
class LexemeDocument(_StatementDocument):
    entity_id: LexemeId
    lexical_category: ItemId = field(default_factory=ItemId.placeholder)
    language: ItemId = field(default_factory=ItemId.placeholder)
    lemmas: FrozenMap = field(default=EMPTY_MAP)
    statements: FrozenMap = field(default=EMPTY_MAP)
    forms: tuple = ()
    senses: tuple = ()
    revision_id: int = 0

    def __post_init__(self) -> None:
        _normalize_terms(self, "lemmas")
        object.__setattr__(self, "forms", tuple(self.forms))
        object.__setattr__(self, "senses", tuple(self.senses))
        _normalize_common(self)

    def with_lemma(self, term: Term) -> "LexemeDocument":
        return replace(self, lemmas=self.lemmas.set(term.language, term))

    def without_lemma(self, language: str) -> "LexemeDocument":
        return replace(self, lemmas=self.lemmas.delete(language))

    def with_lexical_category(self, category: ItemId) -> "LexemeDocument":
        return replace(self, lexical_category=category)

    def with_language(self, language: ItemId) -> "LexemeDocument":
        return replace(self, language=language)

    def find_form(self, form_id: FormId) -> Optional[FormDocument]:
        return next((form for form in self.forms if form.entity_id == form_id), None)

    def find_sense(self, sense_id: SenseId) -> Optional[SenseDocument]:
        return next((sense for sense in self.senses if sense.entity_id == sense_id), None)

    def with_form(self, form: FormDocument) -> "LexemeDocument":
        return replace(self, forms=_replace_or_append(self.forms, form))

    def without_form(self, form_id: FormId) -> "LexemeDocument":
        return replace(self, forms=tuple(f for f in self.forms if f.entity_id != form_id))

    def with_sense(self, sense: SenseDocument) -> "LexemeDocument":
        return replace(self, senses=_replace_or_append(self.senses, sense))

    def without_sense(self, sense_id: SenseId) -> "LexemeDocument":
        return replace(self, senses=tuple(s for s in self.senses if s.entity_id != sense_id))


def _replace_or_append(docs: tuple, doc) -> tuple:
    if doc.entity_id.is_placeholder:
        return docs + (doc,)
    out = list(docs)
    for idx, existing in enumerate(out):
        if existing.entity_id == doc.entity_id:
            out[idx] = doc
            return tuple(out)
    out.append(doc)
    return tuple(out)


@dataclass(frozen=True)
class MediaInfoDocument(_LabelledDocument, _StatementDocument):
    entity_id: MediaInfoId
    labels: FrozenMap = field(default=EMPTY_MAP)
    statements: FrozenMap = field(default=EMPTY_MAP)
    revision_id: int = 0

    def __post_init__(self) -> None:
        _normalize_terms(self, "labels")
        _normalize_common(self)


DOCUMENT_CLASSES = {
    ItemId: ItemDocument,
    PropertyId: PropertyDocument,
    LexemeId: LexemeDocument,
    FormId: FormDocument,
    SenseId: SenseDocument,
    MediaInfoId: MediaInfoDocument,
}

EntityDocument = (ItemDocument, PropertyDocument, LexemeDocument, FormDocument, SenseDocument, MediaInfoDocument)


def empty_document(entity_id: EntityId, revision_id: int = 0):
    """Return a document of the right kind with nothing but an id and revision."""
    return DOCUMENT_CLASSES[type(entity_id)](entity_id, revision_id=revision_id)
