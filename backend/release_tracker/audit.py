from __future__ import annotations

import json
import logging
from typing import Any, Optional

from django.core.serializers.json import DjangoJSONEncoder

from .models import AuditLog

logger = logging.getLogger(__name__)

SYSTEM_OPERATOR = "system"


def _canonical_json(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False, cls=DjangoJSONEncoder)


def _stored_value(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return _canonical_json(value)


def record(
    entity_type: str,
    entity_id: Any,
    action: str,
    *,
    field: str = "",
    old_value: Any = None,
    new_value: Any = None,
    operator: Optional[str] = None,
) -> AuditLog:
    entry = AuditLog.objects.create(
        entity_type=entity_type,
        entity_id=str(entity_id),
        action=action,
        field=field or "",
        old_value=_stored_value(old_value),
        new_value=_stored_value(new_value),
        operator=(operator or "").strip() or SYSTEM_OPERATOR,
    )
    logger.info("audit %s:%s %s %s by %s", entity_type, entity_id, action, field or "-", entry.operator)
    return entry
