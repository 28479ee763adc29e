from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from ...errors import ValidationError
from ...logging_config import logger
from ..cron import CronParseError, validate_expression
from .models import HookRecord
from .store import HookStore
from .utils import clean_text, to_storage_timestamp, utc_now


class HookService:
    """Validated hook management on top of the raw store."""

    def __init__(self, store: HookStore):
        self._store = store

    @property
    def store(self) -> HookStore:
        return self._store

    def create_hook(
        self,
        *,
        name: Optional[str],
        url: Optional[str],
        schedule: Optional[str],
    ) -> HookRecord:
        fields = {"name": name, "url": url, "schedule": schedule}
        missing = [key for key, value in fields.items() if value is None]
        if missing:
            raise ValidationError(
                ValidationError.MISSING_FIELD,
                f"missing required field(s): {', '.join(missing)}",
                field=missing[0],
            )

        cleaned = self._validate_fields(fields)
        timestamp = to_storage_timestamp(utc_now())
        record: Dict[str, Any] = {
            "id": uuid.uuid4().hex,
            **cleaned,
            "created_at": timestamp,
            "updated_at": timestamp,
        }
        hook_id = self._store.insert(record)
        created = self._store.fetch_one(hook_id)
        if not created:  # pragma: no cover - defensive
            raise RuntimeError("Failed to load hook after insert")
        logger.info(
            "hook created",
            extra={"hook_id": created.id, "hook_name": created.name, "schedule": created.schedule},
        )
        return created

    def update_hook(
        self,
        hook_id: str,
        *,
        name: Optional[str] = None,
        url: Optional[str] = None,
        schedule: Optional[str] = None,
    ) -> Optional[HookRecord]:
        existing = self._store.fetch_one(hook_id)
        if existing is None:
            return None

        supplied = {
            key: value
            for key, value in {"name": name, "url": url, "schedule": schedule}.items()
            if value is not None
        }
        if not supplied:
            return existing

        fields = self._validate_fields(supplied)
        updated = self._store.update(hook_id, fields)
        if not updated:
            return None
        logger.info("hook updated", extra={"hook_id": hook_id, "fields": sorted(fields)})
        return self._store.fetch_one(hook_id)

    def list_hooks(self) -> List[HookRecord]:
        return self._store.list_all()

    def get_hook(self, hook_id: str) -> Optional[HookRecord]:
        return self._store.fetch_one(hook_id)

    def delete_hook(self, hook_id: str) -> bool:
        removed = self._store.delete(hook_id)
        if removed:
            logger.info("hook deleted", extra={"hook_id": hook_id})
        return removed

    def last_fired(self, hook_id: str) -> Optional[datetime]:
        return self._store.get_watermark(hook_id)

    def _validate_fields(self, fields: Dict[str, Any]) -> Dict[str, str]:
        cleaned: Dict[str, str] = {}
        for key, value in fields.items():
            text = clean_text(value)
            if not text:
                raise ValidationError(
                    ValidationError.EMPTY_FIELD,
                    f"{key} must not be empty",
                    field=key,
                )
            cleaned[key] = text

        if "schedule" in cleaned:
            try:
                cleaned["schedule"] = validate_expression(cleaned["schedule"])
            except CronParseError as exc:
                raise ValidationError(
                    ValidationError.INVALID_EXPRESSION,
                    str(exc),
                    field="schedule",
                ) from exc
        return cleaned


__all__ = ["HookService"]
