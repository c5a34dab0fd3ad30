import logging
from typing import Any, Dict, Optional

from registry.models import AuditEvent

logger = logging.getLogger(__name__)


def actor_id_of(user) -> Optional[int]:
    """Id of a request user or model user; None for anonymous callers."""
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    return getattr(user, 'id', None)


def log_action(*, actor_id: Optional[int], action: str, object_type: Optional[str] = None,
               object_id=None, detail: Optional[Dict[str, Any]] = None) -> AuditEvent:
    logger.info('audit %s actor=%s %s=%s', action, actor_id, object_type, object_id)
    return AuditEvent.objects.create(
        actor_id=actor_id,
        action=action,
        object_type=object_type,
        object_id=None if object_id is None else str(object_id),
        detail=detail or {},
    )
