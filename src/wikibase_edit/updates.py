"""Update values describing intended changes, and the builders that merge them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .documents import (
    FormDocument,
    ItemDocument,
    LexemeDocument,
    MediaInfoDocument,
    PropertyDocument,
    SenseDocument,
    SiteLink,
    sorted_ids,
)
from .errors import InvalidStatementGroup
from .ids import EntityId, FormId, ItemId, LexemeId, MediaInfoId, PropertyId, SenseId
from .values import EMPTY_MAP, FrozenMap, Statement, Term


# ---------------------------------------------------------------------------
# Sub-updates
# ---------------------------------------------------------------------------


def _dedup(items) -> tuple:
    seen = []
    for item in items or ():
        if item not in seen:
            seen.append(item)
    return tuple(seen)


@dataclass(frozen=True)
class TermUpdate:
    """Terms to upsert (language -> Term) and languages to remove."""

    modified: FrozenMap = field(default=EMPTY_MAP)
    removed: frozenset = frozenset()

    def __post_init__(self) -> None:
        modified = self.modified
        if not isinstance(modified, FrozenMap):
            if isinstance(modified, dict):
                modified = modified.values()
            modified = FrozenMap((term.language, term) for term in modified)
        removed = frozenset(self.removed)
        overlap = removed & set(modified)
        if overlap:
            raise ValueError(f"Languages both modified and removed: {sorted(overlap)}")
        object.__setattr__(self, "modified", modified)
        object.__setattr__(self, "removed", removed)

    @property
    def is_empty(self) -> bool:
        return not self.modified and not self.removed

    @property
    def languages(self) -> set:
        return set(self.modified) | set(self.removed)


EMPTY_TERM_UPDATE = TermUpdate()


@dataclass(frozen=True)
class AliasUpdate:
    """Aliases of one language to append and to remove, or a full replacement list."""

    added: tuple = ()
    removed: tuple = ()
    recreated: Optional[tuple] = None

    def __post_init__(self) -> None:
        added = _dedup(self.added)
        removed = _dedup(self.removed)
        recreated = None if self.recreated is None else _dedup(self.recreated)
        if recreated is not None and (added or removed):
            raise ValueError("Recreated aliases exclude incremental additions and removals.")
        if set(added) & set(removed):
            raise ValueError("The same alias cannot be both added and removed.")
        languages = {term.language for term in added + removed + (recreated or ())}
        if len(languages) > 1:
            raise ValueError(f"Alias updates cover a single language, got {sorted(languages)}")
        object.__setattr__(self, "added", added)
        object.__setattr__(self, "removed", removed)
        object.__setattr__(self, "recreated", recreated)

    @property
    def language(self) -> Optional[str]:
        for term in self.added + self.removed + (self.recreated or ()):
            return term.language
        return None

    @property
    def is_empty(self) -> bool:
        return self.recreated is None and not self.added and not self.removed


EMPTY_ALIAS_UPDATE = AliasUpdate()


@dataclass(frozen=True)
class StatementUpdate:
    """Draft statements to add, statements to replace by id, and ids to remove."""

    added: tuple = ()
    replaced: FrozenMap = field(default=EMPTY_MAP)
    removed: tuple = ()

    def __post_init__(self) -> None:
        added = tuple(self.added)
        replaced = self.replaced
        if not isinstance(replaced, FrozenMap):
            if isinstance(replaced, dict):
                replaced = replaced.values()
            replaced = FrozenMap((statement.statement_id, statement) for statement in replaced)
        removed = _dedup(self.removed)
        if any(not statement.is_draft for statement in added):
            raise ValueError("Added statements must be drafts without an id.")
        if any(statement.is_draft for statement in replaced.values()):
            raise ValueError("Replaced statements must carry an id.")
        if set(replaced) & set(removed):
            raise ValueError("The same statement id cannot be both replaced and removed.")
        object.__setattr__(self, "added", added)
        object.__setattr__(self, "replaced", replaced)
        object.__setattr__(self, "removed", removed)

    @property
    def is_empty(self) -> bool:
        return not self.added and not self.replaced and not self.removed

    def statements(self):
        yield from self.added
        yield from self.replaced.values()


EMPTY_STATEMENT_UPDATE = StatementUpdate()


# ---------------------------------------------------------------------------
# Entity updates
# ---------------------------------------------------------------------------


def _check_update_target(update, id_class) -> None:
    if not isinstance(update.entity_id, id_class):
        raise TypeError(f"{type(update).__name__} needs a {id_class.__name__}, got {update.entity_id!r}")
    if update.entity_id.is_placeholder:
        raise ValueError("Updates must target an existing entity; create new entities from documents.")
    for statement in update.statements.statements():
        if statement.subject != update.entity_id:
            raise InvalidStatementGroup(
                "Updated statements must use the updated entity as subject.",
                {"entity": str(update.entity_id), "subject": str(statement.subject)},
            )


def _alias_updates(aliases) -> FrozenMap:
    if isinstance(aliases, FrozenMap):
        pairs = aliases.items()
    else:
        pairs = dict(aliases or {}).items()
    out = {}
    for language, alias_update in pairs:
        if alias_update.language not in (None, language):
            raise ValueError(f"Alias update for {language!r} contains {alias_update.language!r} terms.")
        if not alias_update.is_empty:
            out[language] = alias_update
    return FrozenMap(out)


class _EntityUpdate:
    """Section listing shared by every entity update kind."""

    SECTION_NAMES: tuple = ()
    EXPLICIT_SECTIONS: tuple = ()

    def sections(self) -> list:
        """Return (section name, sub-update) pairs for every non-empty section."""
        out = []
        for name in self.SECTION_NAMES:
            value = getattr(self, name)
            if value is None:
                continue
            if hasattr(value, "is_empty"):
                if value.is_empty:
                    continue
            elif not value and name not in self.EXPLICIT_SECTIONS:
                continue
            out.append((name, value))
        return out

    @property
    def is_empty(self) -> bool:
        return not self.sections()


@dataclass(frozen=True)
class ItemUpdate(_EntityUpdate):
    entity_id: ItemId
    base_revision_id: int = 0
    labels: TermUpdate = EMPTY_TERM_UPDATE
    descriptions: TermUpdate = EMPTY_TERM_UPDATE
    aliases: FrozenMap = field(default=EMPTY_MAP)
    statements: StatementUpdate = EMPTY_STATEMENT_UPDATE
    modified_sitelinks: FrozenMap = field(default=EMPTY_MAP)
    removed_sitelinks: frozenset = frozenset()

    SECTION_NAMES = ("labels", "descriptions", "aliases", "statements", "modified_sitelinks", "removed_sitelinks")

    def __post_init__(self) -> None:
        object.__setattr__(self, "aliases", _alias_updates(self.aliases))
        object.__setattr__(self, "modified_sitelinks", FrozenMap(self.modified_sitelinks))
        object.__setattr__(self, "removed_sitelinks", frozenset(self.removed_sitelinks))
        if set(self.modified_sitelinks) & self.removed_sitelinks:
            raise ValueError("The same site link cannot be both modified and removed.")
        _check_update_target(self, ItemId)


@dataclass(frozen=True)
class PropertyUpdate(_EntityUpdate):
    entity_id: PropertyId
    base_revision_id: int = 0
    labels: TermUpdate = EMPTY_TERM_UPDATE
    descriptions: TermUpdate = EMPTY_TERM_UPDATE
    aliases: FrozenMap = field(default=EMPTY_MAP)
    statements: StatementUpdate = EMPTY_STATEMENT_UPDATE

    SECTION_NAMES = ("labels", "descriptions", "aliases", "statements")

    def __post_init__(self) -> None:
        object.__setattr__(self, "aliases", _alias_updates(self.aliases))
        _check_update_target(self, PropertyId)


@dataclass(frozen=True)
class MediaInfoUpdate(_EntityUpdate):
    entity_id: MediaInfoId
    base_revision_id: int = 0
    labels: TermUpdate = EMPTY_TERM_UPDATE
    statements: StatementUpdate = EMPTY_STATEMENT_UPDATE

    SECTION_NAMES = ("labels", "statements")

    def __post_init__(self) -> None:
        _check_update_target(self, MediaInfoId)


@dataclass(frozen=True)
class FormUpdate(_EntityUpdate):
    entity_id: FormId
    base_revision_id: int = 0
    representations: TermUpdate = EMPTY_TERM_UPDATE
    grammatical_features: Optional[tuple] = None
    statements: StatementUpdate = EMPTY_STATEMENT_UPDATE

    SECTION_NAMES = ("representations", "grammatical_features", "statements")
    # an empty feature list clears every feature
    EXPLICIT_SECTIONS = ("grammatical_features",)

    def __post_init__(self) -> None:
        if self.grammatical_features is not None:
            object.__setattr__(self, "grammatical_features", sorted_ids(self.grammatical_features))
        _check_update_target(self, FormId)


@dataclass(frozen=True)
class SenseUpdate(_EntityUpdate):
    entity_id: SenseId
    base_revision_id: int = 0
    glosses: TermUpdate = EMPTY_TERM_UPDATE
    statements: StatementUpdate = EMPTY_STATEMENT_UPDATE

    SECTION_NAMES = ("glosses", "statements")

    def __post_init__(self) -> None:
        _check_update_target(self, SenseId)


@dataclass(frozen=True)
class LexemeUpdate(_EntityUpdate):
    entity_id: LexemeId
    base_revision_id: int = 0
    language: Optional[ItemId] = None
    lexical_category: Optional[ItemId] = None
    lemmas: TermUpdate = EMPTY_TERM_UPDATE
    statements: StatementUpdate = EMPTY_STATEMENT_UPDATE
    added_forms: tuple = ()
    updated_forms: FrozenMap = field(default=EMPTY_MAP)
    removed_forms: frozenset = frozenset()
    added_senses: tuple = ()
    updated_senses: FrozenMap = field(default=EMPTY_MAP)
    removed_senses: frozenset = frozenset()

    SECTION_NAMES = (
        "language",
        "lexical_category",
        "lemmas",
        "statements",
        "added_forms",
        "updated_forms",
        "removed_forms",
        "added_senses",
        "updated_senses",
        "removed_senses",
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "added_forms", tuple(self.added_forms))
        object.__setattr__(self, "added_senses", tuple(self.added_senses))
        object.__setattr__(
            self, "updated_forms", FrozenMap((k, v) for k, v in dict(self.updated_forms).items() if not v.is_empty)
        )
        object.__setattr__(
            self, "updated_senses", FrozenMap((k, v) for k, v in dict(self.updated_senses).items() if not v.is_empty)
        )
        object.__setattr__(self, "removed_forms", frozenset(self.removed_forms))
        object.__setattr__(self, "removed_senses", frozenset(self.removed_senses))
        if set(self.updated_forms) & self.removed_forms or set(self.updated_senses) & self.removed_senses:
            raise ValueError("The same form or sense cannot be both updated and removed.")
        for sub_id in list(self.updated_forms) + list(self.removed_forms) + list(self.updated_senses) + list(
            self.removed_senses
        ):
            if sub_id.lexeme_id != self.entity_id:
                raise ValueError(f"{sub_id} does not belong to lexeme {self.entity_id}.")
        _check_update_target(self, LexemeId)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


class TermUpdateBuilder:
    """Accumulates term upserts and removals; the last operation per language wins."""

    def __init__(self, base=None):
        self._base = None if base is None else {term.language: term for term in _terms(base)}
        self._modified = {}
        self._removed = {}

    @classmethod
    def create(cls):
        return cls()

    @classmethod
    def for_terms(cls, terms):
        return cls(terms)

    def put(self, term: Term):
        self._removed.pop(term.language, None)
        if self._base is not None and self._base.get(term.language) == term:
            self._modified.pop(term.language, None)
        else:
            self._modified[term.language] = term
        return self

    def remove(self, language: str):
        self._modified.pop(language, None)
        if self._base is None or language in self._base:
            self._removed[language] = None
        return self

    def append(self, update: TermUpdate):
        for language in sorted(update.removed):
            self.remove(language)
        for term in update.modified.values():
            self.put(term)
        return self

    def build(self) -> TermUpdate:
        return TermUpdate(FrozenMap(self._modified), frozenset(self._removed))


def _terms(terms):
    if hasattr(terms, "values"):
        return list(terms.values())
    return list(terms)


class AliasUpdateBuilder:
    """Accumulates alias changes for one language."""

    def __init__(self, base: Optional[Iterable[Term]] = None):
        self._base = None if base is None else list(_dedup(base))
        self._language = None
        self._added = []
        self._removed = []
        self._recreated = None

    @classmethod
    def create(cls):
        return cls()

    @classmethod
    def for_aliases(cls, aliases):
        return cls(aliases)

    def _check_language(self, term: Term) -> None:
        if self._language is None:
            self._language = term.language
        elif term.language != self._language:
            raise ValueError(f"Alias builder for {self._language!r} got a {term.language!r} term.")

    def _in_base(self, term: Term) -> bool:
        return self._base is not None and term in self._base

    def add(self, term: Term):
        self._check_language(term)
        if self._recreated is not None:
            if term not in self._recreated:
                self._recreated.append(term)
            return self
        if term in self._removed:
            self._removed.remove(term)
            if self._in_base(term):
                return self
        if term in self._added or self._in_base(term):
            return self
        self._added.append(term)
        return self

    def remove(self, term: Term):
        self._check_language(term)
        if self._recreated is not None:
            if term in self._recreated:
                self._recreated.remove(term)
            return self
        if term in self._added:
            self._added.remove(term)
            return self
        if term in self._removed:
            return self
        if self._base is not None and term not in self._base:
            return self
        self._removed.append(term)
        return self

    def recreate(self, terms: Iterable[Term]):
        terms = list(_dedup(terms))
        for term in terms:
            self._check_language(term)
        self._added = []
        self._removed = []
        self._recreated = terms
        return self

    def append(self, update: AliasUpdate):
        if update.recreated is not None:
            return self.recreate(update.recreated)
        for term in update.removed:
            self.remove(term)
        for term in update.added:
            self.add(term)
        return self

    def build(self) -> AliasUpdate:
        if self._recreated is not None:
            if self._base is not None and self._recreated == self._base:
                return EMPTY_ALIAS_UPDATE
            return AliasUpdate(recreated=tuple(self._recreated))
        return AliasUpdate(tuple(self._added), tuple(self._removed))


class StatementUpdateBuilder:
    """Accumulates statement additions, replacements and removals."""

    def __init__(self, subject: Optional[EntityId] = None, base: Optional[Iterable[Statement]] = None):
        self._subject = subject
        self._base = None if base is None else {s.statement_id: s for s in base if s.statement_id}
        self._base_statements = None if base is None else list(self._base.values())
        self._added = []
        self._replaced = {}
        self._removed = {}
        self._skipped = []

    @classmethod
    def create(cls):
        return cls()

    @classmethod
    def for_statements(cls, subject: EntityId, statements: Iterable[Statement]):
        return cls(subject, statements)

    def _check_subject(self, statement: Statement) -> None:
        if self._subject is None:
            self._subject = statement.subject
        elif statement.subject != self._subject:
            raise InvalidStatementGroup(
                "All statements of an update must share the subject.",
                {"expected": str(self._subject), "found": str(statement.subject)},
            )

    def add(self, statement: Statement):
        if not statement.is_draft:
            raise ValueError("Only draft statements can be added; use replace() for stored statements.")
        self._check_subject(statement)
        if self._base_statements is not None and any(s.same_claim(statement) for s in self._base_statements):
            self._skipped.append(statement)
            return self
        self._added.append(statement)
        return self

    def replace(self, statement: Statement):
        if statement.is_draft:
            raise ValueError("Replaced statements must carry an id.")
        self._check_subject(statement)
        statement_id = statement.statement_id
        self._removed.pop(statement_id, None)
        if self._base is not None and self._base.get(statement_id) == statement:
            self._replaced.pop(statement_id, None)
        else:
            self._replaced[statement_id] = statement
        return self

    def remove(self, statement):
        """Remove a stored statement (by id or value) or cancel a pending draft."""
        if isinstance(statement, Statement):
            if statement.is_draft:
                for idx, pending in enumerate(self._added):
                    if pending is statement:
                        del self._added[idx]
                        return self
                if any(skipped is statement for skipped in self._skipped):
                    return self
                raise ValueError("Draft statements can only be removed while pending in the same builder.")
            statement_id = statement.statement_id
        else:
            statement_id = statement
        self._replaced.pop(statement_id, None)
        if self._base is not None and statement_id not in self._base:
            return self
        self._removed[statement_id] = None
        return self

    def append(self, update: StatementUpdate):
        for statement_id in update.removed:
            self.remove(statement_id)
        for statement in update.replaced.values():
            self.replace(statement)
        for statement in update.added:
            self.add(statement)
        return self

    def build(self) -> StatementUpdate:
        return StatementUpdate(tuple(self._added), FrozenMap(self._replaced), tuple(self._removed))


class _EntityUpdateBuilder:
    id_class = EntityId

    def __init__(self, entity_id, base_revision_id: int = 0, base_document=None):
        if not isinstance(entity_id, self.id_class):
            raise TypeError(f"{type(self).__name__} needs a {self.id_class.__name__}, got {entity_id!r}")
        self.entity_id = entity_id
        self.base_revision_id = base_revision_id
        self.base_document = base_document
        base_statements = list(base_document.all_statements()) if base_document is not None else None
        self._statements = StatementUpdateBuilder(entity_id, base_statements)

    @classmethod
    def for_entity_id(cls, entity_id):
        return cls(entity_id)

    @classmethod
    def for_base_revision_id(cls, entity_id, base_revision_id: int):
        return cls(entity_id, base_revision_id)

    @classmethod
    def for_base_document(cls, document):
        return cls(document.entity_id, document.revision_id, document)

    def _base_attr(self, name):
        if self.base_document is None:
            return None
        return getattr(self.base_document, name)

    def update_statements(self, update: StatementUpdate):
        self._statements.append(update)
        return self


class _TermsMixin:
    def _term_builder(self, name: str) -> TermUpdateBuilder:
        builders = self.__dict__.setdefault("_term_builders", {})
        if name not in builders:
            builders[name] = TermUpdateBuilder(self._base_attr(name))
        return builders[name]

    def _term_update(self, name: str) -> TermUpdate:
        builders = self.__dict__.get("_term_builders", {})
        return builders[name].build() if name in builders else EMPTY_TERM_UPDATE


class _LabelsMixin(_TermsMixin):
    def update_labels(self, update: TermUpdate):
        self._term_builder("labels").append(update)
        return self


class _DescriptionsAliasesMixin(_LabelsMixin):
    def update_descriptions(self, update: TermUpdate):
        self._term_builder("descriptions").append(update)
        return self

    def update_aliases(self, language: str, update: AliasUpdate):
        if update.language not in (None, language):
            raise ValueError(f"Alias update for {language!r} contains {update.language!r} terms.")
        builders = self.__dict__.setdefault("_alias_builders", {})
        if language not in builders:
            base = self._base_attr("aliases")
            builders[language] = AliasUpdateBuilder(None if base is None else base.get(language, ()))
        builders[language].append(update)
        return self

    def _alias_update_map(self) -> dict:
        builders = self.__dict__.get("_alias_builders", {})
        return {language: builder.build() for language, builder in builders.items()}


class ItemUpdateBuilder(_DescriptionsAliasesMixin, _EntityUpdateBuilder):
    id_class = ItemId

    def __init__(self, entity_id, base_revision_id=0, base_document=None):
        super().__init__(entity_id, base_revision_id, base_document)
        self._sitelinks = {}
        self._removed_sitelinks = {}

    def put_sitelink(self, sitelink: SiteLink):
        self._removed_sitelinks.pop(sitelink.site_key, None)
        base = self._base_attr("sitelinks")
        if base is not None and base.get(sitelink.site_key) == sitelink:
            self._sitelinks.pop(sitelink.site_key, None)
        else:
            self._sitelinks[sitelink.site_key] = sitelink
        return self

    def remove_sitelink(self, site_key: str):
        self._sitelinks.pop(site_key, None)
        base = self._base_attr("sitelinks")
        if base is None or site_key in base:
            self._removed_sitelinks[site_key] = None
        return self

    def build(self) -> ItemUpdate:
        return ItemUpdate(
            self.entity_id,
            self.base_revision_id,
            labels=self._term_update("labels"),
            descriptions=self._term_update("descriptions"),
            aliases=self._alias_update_map(),
            statements=self._statements.build(),
            modified_sitelinks=FrozenMap(self._sitelinks),
            removed_sitelinks=frozenset(self._removed_sitelinks),
        )


class PropertyUpdateBuilder(_DescriptionsAliasesMixin, _EntityUpdateBuilder):
    id_class = PropertyId

    def build(self) -> PropertyUpdate:
        return PropertyUpdate(
            self.entity_id,
            self.base_revision_id,
            labels=self._term_update("labels"),
            descriptions=self._term_update("descriptions"),
            aliases=self._alias_update_map(),
            statements=self._statements.build(),
        )


class MediaInfoUpdateBuilder(_LabelsMixin, _EntityUpdateBuilder):
    id_class = MediaInfoId

    def build(self) -> MediaInfoUpdate:
        return MediaInfoUpdate(
            self.entity_id,
            self.base_revision_id,
            labels=self._term_update("labels"),
            statements=self._statements.build(),
        )


class FormUpdateBuilder(_TermsMixin, _EntityUpdateBuilder):
    id_class = FormId

    def __init__(self, entity_id, base_revision_id=0, base_document=None):
        super().__init__(entity_id, base_revision_id, base_document)
        self._features = None

    def update_representations(self, update: TermUpdate):
        self._term_builder("representations").append(update)
        return self

    def set_grammatical_features(self, features: Iterable[ItemId]):
        features = sorted_ids(features)
        base = self._base_attr("grammatical_features")
        self._features = None if base is not None and features == base else features
        return self

    def append(self, update: FormUpdate):
        self.update_representations(update.representations)
        if update.grammatical_features is not None:
            self.set_grammatical_features(update.grammatical_features)
        return self.update_statements(update.statements)

    def build(self) -> FormUpdate:
        return FormUpdate(
            self.entity_id,
            self.base_revision_id,
            representations=self._term_update("representations"),
            grammatical_features=self._features,
            statements=self._statements.build(),
        )


class SenseUpdateBuilder(_TermsMixin, _EntityUpdateBuilder):
    id_class = SenseId

    def update_glosses(self, update: TermUpdate):
        self._term_builder("glosses").append(update)
        return self

    def append(self, update: SenseUpdate):
        self.update_glosses(update.glosses)
        return self.update_statements(update.statements)

    def build(self) -> SenseUpdate:
        return SenseUpdate(
            self.entity_id,
            self.base_revision_id,
            glosses=self._term_update("glosses"),
            statements=self._statements.build(),
        )


class LexemeUpdateBuilder(_TermsMixin, _EntityUpdateBuilder):
    id_class = LexemeId

    def __init__(self, entity_id, base_revision_id=0, base_document=None):
        super().__init__(entity_id, base_revision_id, base_document)
        self._language = None
        self._lexical_category = None
        self._added_forms = []
        self._form_builders = {}
        self._removed_forms = {}
        self._added_senses = []
        self._sense_builders = {}
        self._removed_senses = {}

    def set_language(self, language: ItemId):
        self._language = None if self._base_attr("language") == language else language
        return self

    def set_lexical_category(self, category: ItemId):
        self._lexical_category = None if self._base_attr("lexical_category") == category else category
        return self

    def update_lemmas(self, update: TermUpdate):
        self._term_builder("lemmas").append(update)
        return self

    def add_form(self, form: FormDocument):
        if not form.entity_id.is_placeholder:
            raise ValueError("New forms must use a placeholder id.")
        self._added_forms.append(form)
        return self

    def update_form(self, update: FormUpdate):
        form_id = update.entity_id
        self._removed_forms.pop(form_id, None)
        if form_id not in self._form_builders:
            base_form = self.base_document.find_form(form_id) if self.base_document is not None else None
            self._form_builders[form_id] = FormUpdateBuilder(form_id, self.base_revision_id, base_form)
        self._form_builders[form_id].append(update)
        return self

    def remove_form(self, form_id: FormId):
        self._form_builders.pop(form_id, None)
        self._removed_forms[form_id] = None
        return self

    def add_sense(self, sense: SenseDocument):
        if not sense.entity_id.is_placeholder:
            raise ValueError("New senses must use a placeholder id.")
        self._added_senses.append(sense)
        return self

    def update_sense(self, update: SenseUpdate):
        sense_id = update.entity_id
        self._removed_senses.pop(sense_id, None)
        if sense_id not in self._sense_builders:
            base_sense = self.base_document.find_sense(sense_id) if self.base_document is not None else None
            self._sense_builders[sense_id] = SenseUpdateBuilder(sense_id, self.base_revision_id, base_sense)
        self._sense_builders[sense_id].append(update)
        return self

    def remove_sense(self, sense_id: SenseId):
        self._sense_builders.pop(sense_id, None)
        self._removed_senses[sense_id] = None
        return self

    def build(self) -> LexemeUpdate:
        return LexemeUpdate(
            self.entity_id,
            self.base_revision_id,
            language=self._language,
            lexical_category=self._lexical_category,
            lemmas=self._term_update("lemmas"),
            statements=self._statements.build(),
            added_forms=tuple(self._added_forms),
            updated_forms=FrozenMap((k, b.build()) for k, b in self._form_builders.items()),
            removed_forms=frozenset(self._removed_forms),
            added_senses=tuple(self._added_senses),
            updated_senses=FrozenMap((k, b.build()) for k, b in self._sense_builders.items()),
            removed_senses=frozenset(self._removed_senses),
        )


# ---------------------------------------------------------------------------
# Local application
# ---------------------------------------------------------------------------


def _apply_terms(document, update: TermUpdate, with_name: str, without_name: str):
    for language in sorted(update.removed):
        document = getattr(document, without_name)(language)
    for term in update.modified.values():
        document = getattr(document, with_name)(term)
    return document


def _apply_aliases(document, aliases: FrozenMap):
    for language, alias_update in aliases.items():
        if alias_update.recreated is not None:
            current = list(alias_update.recreated)
        else:
            current = [t for t in document.aliases.get(language, ()) if t not in alias_update.removed]
            current += [t for t in alias_update.added if t not in current]
        document = document.with_aliases(language, current)
    return document


def _apply_statements(document, update: StatementUpdate):
    document = document.without_statement_ids(update.removed)
    for statement in update.replaced.values():
        document = document.with_statement(statement)
    for statement in update.added:
        document = document.with_statement(statement)
    return document


def apply_update(document, update):
    """Apply ``update`` to ``document`` locally, leaving the revision id untouched."""
    if document.entity_id != update.entity_id:
        raise ValueError(f"Update for {update.entity_id} cannot apply to {document.entity_id}.")
    if isinstance(document, (ItemDocument, PropertyDocument)):
        document = _apply_terms(document, update.labels, "with_label", "without_label")
        document = _apply_terms(document, update.descriptions, "with_description", "without_description")
        document = _apply_aliases(document, update.aliases)
    elif isinstance(document, MediaInfoDocument):
        document = _apply_terms(document, update.labels, "with_label", "without_label")
    elif isinstance(document, FormDocument):
        document = _apply_terms(document, update.representations, "with_representation", "without_representation")
        if update.grammatical_features is not None:
            document = FormDocument(
                document.entity_id,
                document.representations,
                update.grammatical_features,
                document.statements,
                document.revision_id,
            )
    elif isinstance(document, SenseDocument):
        document = _apply_terms(document, update.glosses, "with_gloss", "without_gloss")
    elif isinstance(document, LexemeDocument):
        document = _apply_terms(document, update.lemmas, "with_lemma", "without_lemma")
        if update.language is not None:
            document = document.with_language(update.language)
        if update.lexical_category is not None:
            document = document.with_lexical_category(update.lexical_category)
        for form_id in update.removed_forms:
            document = document.without_form(form_id)
        for form_id, form_update in update.updated_forms.items():
            form = document.find_form(form_id) or FormDocument(form_id)
            document = document.with_form(apply_update(form, form_update))
        for form in update.added_forms:
            document = document.with_form(form)
        for sense_id in update.removed_senses:
            document = document.without_sense(sense_id)
        for sense_id, sense_update in update.updated_senses.items():
            sense = document.find_sense(sense_id) or SenseDocument(sense_id)
            document = document.with_sense(apply_update(sense, sense_update))
        for sense in update.added_senses:
            document = document.with_sense(sense)
    else:
        raise TypeError(f"Unsupported document {type(document).__name__}")

    if isinstance(document, ItemDocument):
        for site_key in sorted(update.removed_sitelinks):
            document = document.without_sitelink(site_key)
        for sitelink in update.modified_sitelinks.values():
            document = document.with_sitelink(sitelink)
    return _apply_statements(document, update.statements)
