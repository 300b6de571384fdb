"""Pick the narrowest API call that carries out an update."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Optional, Protocol

from .codec import WireCodec, dumps
from .documents import FormDocument, LexemeDocument, MediaInfoDocument, SenseDocument
from .ids import EntityId
from .updates import (
    ItemUpdate,
    LexemeUpdate,
    MediaInfoUpdate,
    PropertyUpdate,
    apply_update,
)
from .values import Statement

ACTION_SET_LABEL = "wbsetlabel"
ACTION_SET_DESCRIPTION = "wbsetdescription"
ACTION_SET_ALIASES = "wbsetaliases"
ACTION_SET_CLAIM = "wbsetclaim"
ACTION_REMOVE_CLAIMS = "wbremoveclaims"
ACTION_EDIT_ENTITY = "wbeditentity"

_TERM_ACTIONS = {"labels": ACTION_SET_LABEL, "descriptions": ACTION_SET_DESCRIPTION}


class GuidGenerator(Protocol):
    def fresh_statement_id(self, subject_id: str) -> str:
        ...


class RandomGuidGenerator:
    """Statement ids of the form ``Q42$8372EF7A-...`` from random uuids."""

    def fresh_statement_id(self, subject_id: str) -> str:
        return f"{subject_id}${str(uuid.uuid4()).upper()}"


@dataclass(frozen=True)
class EditPlan:
    """One API call: action name, its specific parameters and what to expect back.

    ``params`` excludes the token, maxlag, summary, tags and bot flags, which
    the editor adds at dispatch time.
    """

    action: str
    entity_id: Optional[EntityId]
    params: dict = field(default_factory=dict, hash=False)
    base_revision_id: int = 0
    statement: Optional[Statement] = None
    removed_statement_ids: tuple = ()

    @property
    def is_full_edit(self) -> bool:
        return self.action == ACTION_EDIT_ENTITY


def _full_edit(update, codec: WireCodec, clear: bool, base_document=None) -> EditPlan:
    if clear and base_document is not None:
        data = codec.encode_document(apply_update(base_document, update))
        data.pop("lastrevid", None)
    else:
        data = codec.encode_update(update)
    params = {"id": update.entity_id.id, "data": dumps(data)}
    if clear:
        params["clear"] = ""
    return EditPlan(ACTION_EDIT_ENTITY, update.entity_id, params, update.base_revision_id)


def _term_plan(update, name: str, term_update) -> Optional[EditPlan]:
    if len(term_update.languages) != 1:
        return None
    if name == "labels" and not isinstance(update, (ItemUpdate, PropertyUpdate, MediaInfoUpdate)):
        return None
    if name == "descriptions" and not isinstance(update, (ItemUpdate, PropertyUpdate)):
        return None
    if term_update.removed:
        language, value = next(iter(term_update.removed)), None
    else:
        term = next(iter(term_update.modified.values()))
        language, value = term.language, term.text
    params = {"id": update.entity_id.id, "language": language, "value": value}
    return EditPlan(_TERM_ACTIONS[name], update.entity_id, params, update.base_revision_id)


def _alias_plan(update, aliases) -> Optional[EditPlan]:
    if len(aliases) != 1:
        return None
    language, alias_update = next(iter(aliases.items()))
    if alias_update.recreated is not None:
        return None
    if any("|" in term.text for term in alias_update.added + alias_update.removed):
        return None
    params = {
        "id": update.entity_id.id,
        "language": language,
        "add": "|".join(term.text for term in alias_update.added) or None,
        "remove": "|".join(term.text for term in alias_update.removed) or None,
    }
    return EditPlan(ACTION_SET_ALIASES, update.entity_id, params, update.base_revision_id)


def _statement_plan(update, statement_update, codec: WireCodec, guids: GuidGenerator) -> Optional[EditPlan]:
    changed = list(statement_update.statements())
    if statement_update.removed:
        if changed:
            return None
        params = {"claim": "|".join(statement_update.removed)}
        return EditPlan(
            ACTION_REMOVE_CLAIMS,
            update.entity_id,
            params,
            update.base_revision_id,
            removed_statement_ids=tuple(statement_update.removed),
        )
    if len(changed) != 1:
        return None
    statement = changed[0]
    if statement.is_draft:
        statement = statement.with_statement_id(guids.fresh_statement_id(update.entity_id.id))
    params = {"claim": dumps(codec.encode_statement(statement))}
    return EditPlan(ACTION_SET_CLAIM, update.entity_id, params, update.base_revision_id, statement=statement)


def _sub_entity_plan(update: LexemeUpdate, sections: list, codec: WireCodec) -> Optional[EditPlan]:
    if len(sections) != 1 or sections[0][0] not in ("updated_forms", "updated_senses"):
        return None
    sub_updates = sections[0][1]
    if len(sub_updates) != 1:
        return None
    sub_id, sub_update = next(iter(sub_updates.items()))
    params = {"id": sub_id.id, "data": dumps(codec.encode_update(sub_update))}
    return EditPlan(ACTION_EDIT_ENTITY, sub_id, params, update.base_revision_id)


def reduce_update(
    update,
    codec: WireCodec,
    guids: Optional[GuidGenerator] = None,
    clear: bool = False,
    base_document=None,
) -> Optional[EditPlan]:
    """Return the plan for ``update``, or None when nothing would change.

    Clearing edits always go through a full edit-entity call.
    """
    if clear:
        return _full_edit(update, codec, clear, base_document)
    sections = update.sections()
    if not sections:
        return None
    guids = guids or RandomGuidGenerator()
    plan = None
    if len(sections) == 1:
        name, value = sections[0]
        if name in _TERM_ACTIONS:
            plan = _term_plan(update, name, value)
        elif name == "aliases":
            plan = _alias_plan(update, value)
        elif name == "statements":
            plan = _statement_plan(update, value, codec, guids)
    if plan is None and isinstance(update, LexemeUpdate):
        plan = _sub_entity_plan(update, sections, codec)
    return plan or _full_edit(update, codec, clear)


_NEW_ENTITY_TYPES = {"item", "property", "lexeme"}


def plan_creation(document, codec: WireCodec) -> EditPlan:
    """Plan a ``wbeditentity`` call creating ``document`` as a new entity."""
    if isinstance(document, (MediaInfoDocument, FormDocument, SenseDocument)):
        raise ValueError(f"Creating {type(document).__name__} entities is not supported.")
    if not document.entity_id.is_placeholder:
        raise ValueError(f"New entities must use a placeholder id, got {document.entity_id}.")
    data = codec.encode_document(document)
    entity_type = data.pop("type")
    if entity_type not in _NEW_ENTITY_TYPES:
        raise ValueError(f"Cannot create entities of type {entity_type!r}.")
    data.pop("lastrevid", None)
    if isinstance(document, LexemeDocument) and (document.forms or document.senses):
        # the server assigns form and sense ids on creation
        data["forms"] = [dict(form, add="") for form in data.get("forms", [])]
        data["senses"] = [dict(sense, add="") for sense in data.get("senses", [])]
    return EditPlan(ACTION_EDIT_ENTITY, None, {"new": entity_type, "data": dumps(data)})


def plan_null_edit(document) -> EditPlan:
    """An edit-entity call with an empty patch, used to refresh derived data."""
    params = {"id": document.entity_id.id, "data": "{}"}
    return EditPlan(ACTION_EDIT_ENTITY, document.entity_id, params, document.revision_id)
