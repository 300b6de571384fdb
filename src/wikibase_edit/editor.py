"""Edit controller: dispatches reduced updates with maxlag, token and budget handling."""

from __future__ import annotations

import logging
import time
from typing import Iterable, Optional

from . import config
from .codec import WireCodec
from .connection import CsrfTokenCache
from .documents import FormDocument, LexemeDocument, empty_document
from .errors import MaxlagError, RateLimitExceeded, TokenError, raise_for_api_error
from .reduction import (
    ACTION_REMOVE_CLAIMS,
    ACTION_SET_ALIASES,
    ACTION_SET_CLAIM,
    ACTION_SET_DESCRIPTION,
    ACTION_SET_LABEL,
    EditPlan,
    GuidGenerator,
    RandomGuidGenerator,
    plan_creation,
    plan_null_edit,
    reduce_update,
)
from .responses import (
    ENTITY_RESPONSE_SCHEMA,
    REMOVE_CLAIMS_RESPONSE_SCHEMA,
    SET_CLAIM_RESPONSE_SCHEMA,
    TERM_EDIT_RESPONSE_SCHEMA,
    validate_response,
)
from .throttle import EditThrottle
from .updates import apply_update

logger = logging.getLogger(__name__)

_TERM_ACTIONS = (ACTION_SET_LABEL, ACTION_SET_DESCRIPTION, ACTION_SET_ALIASES)


class WikibaseDataEditor:
    """Writes updates to a Wikibase site one call at a time.

    Instances hold the remaining edit budget and the cached CSRF token; share
    one instance between threads only behind external locking.
    """

    def __init__(
        self,
        connection,
        site_iri: str = config.SITE_WIKIDATA,
        guid_generator: Optional[GuidGenerator] = None,
        token_cache: Optional[CsrfTokenCache] = None,
        maxlag: int = config.MAXLAG,
        maxlag_first_wait: float = config.MAXLAG_FIRST_WAIT_SECONDS,
        maxlag_backoff_factor: float = config.MAXLAG_BACKOFF_FACTOR,
        maxlag_max_retries: int = config.MAXLAG_MAX_RETRIES,
        average_time_per_edit: float = config.AVERAGE_TIME_PER_EDIT_SECONDS,
        remaining_edits: int = config.UNLIMITED_EDITS,
        edit_as_bot: bool = False,
        sleep=time.sleep,
    ):
        self.connection = connection
        self.codec = WireCodec(site_iri)
        self.guid_generator = guid_generator or RandomGuidGenerator()
        self.token_cache = token_cache or CsrfTokenCache(connection.fetch_csrf_token)
        self.maxlag = maxlag
        self.maxlag_first_wait = maxlag_first_wait
        self.maxlag_backoff_factor = maxlag_backoff_factor
        self.maxlag_max_retries = maxlag_max_retries
        self.remaining_edits = remaining_edits
        self.edit_as_bot = edit_as_bot
        self._sleep = sleep
        self._throttle = EditThrottle(average_time_per_edit, sleep=sleep)

    @property
    def site_iri(self) -> str:
        return self.codec.site_iri

    @property
    def average_time_per_edit(self) -> float:
        return self._throttle.average_time_per_edit

    @average_time_per_edit.setter
    def average_time_per_edit(self, seconds: float) -> None:
        self._throttle.average_time_per_edit = seconds or 0

    def disable_editing(self) -> None:
        """Refuse every further edit without contacting the server."""
        self.remaining_edits = 0

    # -- operations ---------------------------------------------------------

    def edit_entity(
        self,
        update,
        base_document=None,
        clear: bool = False,
        summary: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
    ):
        """Apply ``update`` remotely and return the resulting document.

        Returns ``base_document`` unchanged for an empty update and None when
        the edit budget is exhausted.
        """
        if base_document is not None and base_document.entity_id != update.entity_id:
            raise ValueError(f"Base document {base_document.entity_id} does not match {update.entity_id}.")
        plan = reduce_update(update, self.codec, self.guid_generator, clear, base_document)
        if plan is None:
            logger.info("[*] No changes for %s; skipping edit.", update.entity_id)
            return base_document
        if not self._edits_remaining(update.entity_id):
            return None
        payload = self._dispatch(plan, summary, tags)
        return self._result_document(plan, update, payload, base_document)

    def create_entity(self, document, summary: Optional[str] = None, tags: Optional[Iterable[str]] = None):
        """Create ``document`` (with a placeholder id) and return the stored version."""
        plan = plan_creation(document, self.codec)
        if not self._edits_remaining("new entity"):
            return None
        payload = self._dispatch(plan, summary, tags)
        validate_response(payload, ENTITY_RESPONSE_SCHEMA, plan.action)
        created = self.codec.decode_document(payload["entity"])
        logger.info("[*] Created %s at revision %s", created.entity_id, created.revision_id)
        return created

    def null_edit(self, document):
        """Save ``document`` without changes; counts against the edit budget."""
        plan = plan_null_edit(document)
        if not self._edits_remaining(document.entity_id):
            return None
        payload = self._dispatch(plan, None, None)
        validate_response(payload, ENTITY_RESPONSE_SCHEMA, plan.action)
        return self.codec.decode_document(payload["entity"])

    # -- internals ----------------------------------------------------------

    def _edits_remaining(self, target) -> bool:
        if self.remaining_edits == 0:
            logger.warning("[!] Edit budget exhausted; not editing %s.", target)
            return False
        return True

    def _request_params(self, plan: EditPlan, summary, tags) -> dict:
        params = {"action": plan.action}
        params.update(plan.params)
        if plan.base_revision_id:
            params["baserevid"] = plan.base_revision_id
        if summary is not None:
            params["summary"] = summary
        if tags:
            params["tags"] = "|".join(tags)
        if self.edit_as_bot:
            params["bot"] = ""
        params["maxlag"] = self.maxlag
        return params

    def _dispatch(self, plan: EditPlan, summary, tags) -> dict:
        params = self._request_params(plan, summary, tags)
        target = plan.entity_id or params.get("new")
        self._throttle.acquire()
        attempt = 1
        token_refreshed = False
        while True:
            request = dict(params, token=self.token_cache.get_token())
            logger.info("[*] %s on %s (attempt %s/%s)", plan.action, target, attempt, self.maxlag_max_retries)
            try:
                payload = self.connection.post(request)
                raise_for_api_error(payload)
            except MaxlagError as exc:
                if attempt >= self.maxlag_max_retries:
                    logger.warning("[!] Server still lagged after %s attempts; giving up on %s.", attempt, target)
                    raise RateLimitExceeded(attempt, exc) from exc
                wait = self.maxlag_first_wait * self.maxlag_backoff_factor ** (attempt - 1)
                logger.warning("[!] Maxlag exceeded (%s). Sleeping %.1fs...", exc.info, wait)
                self._sleep(wait)
                attempt += 1
                continue
            except TokenError:
                if token_refreshed:
                    raise
                logger.warning("[!] CSRF token rejected; refreshing once.")
                self.token_cache.invalidate()
                token_refreshed = True
                continue
            break
        if self.remaining_edits > 0:
            self.remaining_edits -= 1
        return payload

    def _result_document(self, plan: EditPlan, update, payload: dict, base_document):
        base = base_document
        if base is None:
            base = empty_document(update.entity_id, update.base_revision_id)

        if plan.action in _TERM_ACTIONS:
            validate_response(payload, TERM_EDIT_RESPONSE_SCHEMA, plan.action)
            return apply_update(base, update).with_revision_id(payload["entity"]["lastrevid"])
        if plan.action == ACTION_SET_CLAIM:
            validate_response(payload, SET_CLAIM_RESPONSE_SCHEMA, plan.action)
            statement = self.codec.decode_statement(payload["claim"], update.entity_id)
            return base.with_statement(statement).with_revision_id(payload["pageinfo"]["lastrevid"])
        if plan.action == ACTION_REMOVE_CLAIMS:
            validate_response(payload, REMOVE_CLAIMS_RESPONSE_SCHEMA, plan.action)
            removed = base.without_statement_ids(plan.removed_statement_ids)
            return removed.with_revision_id(payload["pageinfo"]["lastrevid"])

        validate_response(payload, ENTITY_RESPONSE_SCHEMA, plan.action)
        document = self.codec.decode_document(payload["entity"])
        if plan.entity_id != update.entity_id and isinstance(base, LexemeDocument):
            if isinstance(document, FormDocument):
                merged = base.with_form(document)
            else:
                merged = base.with_sense(document)
            return merged.with_revision_id(document.revision_id)
        return document
