# File: exceptions.py
"""Error taxonomy for LifeTrack.

Every error carries a ``translation_key`` (and optional placeholders) so that a
UI layer can render a localized message.
"""

from __future__ import annotations

from typing import Any

from . import const


class LifeTrackError(Exception):
    """Base class for all errors raised by the engine."""

    translation_key: str = const.TRANS_KEY_ERROR_UNKNOWN

    def __init__(
        self,
        message: str,
        *,
        translation_key: str | None = None,
        translation_placeholders: dict[str, str] | None = None,
    ) -> None:
        super().__init__(message)
        if translation_key is not None:
            self.translation_key = translation_key
        self.translation_placeholders = translation_placeholders or {}


class NotAuthenticatedError(LifeTrackError):
    """No user identity is available for a mutation."""

    translation_key = const.TRANS_KEY_ERROR_NOT_AUTHENTICATED

    def __init__(self) -> None:
        super().__init__("Not authenticated")


class NotFoundError(LifeTrackError):
    """A referenced habit, task, subtask or completion does not exist.

    Attributes:
        entity_type: Label of the missing entity (const.LABEL_*)
        entity_id: Identifier that was looked up
    """

    translation_key = const.TRANS_KEY_ERROR_NOT_FOUND

    def __init__(self, entity_type: str, entity_id: str) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"{entity_type} '{entity_id}' not found",
            translation_placeholders={"entity": entity_type, "id": entity_id},
        )


class InvalidInputError(LifeTrackError):
    """Input rejected before any store write.

    Attributes:
        field: Name of the offending field
        reason: Human-readable reason
    """

    translation_key = const.TRANS_KEY_ERROR_INVALID_INPUT

    def __init__(self, field: str, reason: str) -> None:
        self.field = field
        self.reason = reason
        super().__init__(
            f"Invalid value for '{field}': {reason}",
            translation_placeholders={"field": field, "reason": reason},
        )


class StoreError(LifeTrackError):
    """Underlying store failure.

    The original message is kept verbatim; raise with ``from err`` so the
    original exception stays reachable through ``__cause__``.
    """

    translation_key = const.TRANS_KEY_ERROR_STORE_FAILURE


class PartialBulkFailureError(LifeTrackError):
    """Some items of a bulk operation failed.

    Identifiers in ``applied_ids`` are guaranteed to have been applied.

    Attributes:
        failed_ids: Identifiers that could not be processed
        applied_ids: Identifiers that were processed
        errors: Per-id error, keyed by identifier
    """

    translation_key = const.TRANS_KEY_ERROR_PARTIAL_BULK_FAILURE

    def __init__(
        self,
        failed_ids: list[str],
        applied_ids: list[str],
        errors: dict[str, Any] | None = None,
    ) -> None:
        self.failed_ids = failed_ids
        self.applied_ids = applied_ids
        self.errors = errors or {}
        super().__init__(
            f"{len(failed_ids)} of {len(failed_ids) + len(applied_ids)} "
            f"items failed: {', '.join(failed_ids)}",
            translation_placeholders={"failed": ", ".join(failed_ids)},
        )
