"""Audit trail of match and demographics requests, written as structured log records."""

import json
import logging
from collections.abc import Mapping
from datetime import datetime, timezone

from src.matching.models import AuditAction

logger = logging.getLogger(__name__)


class AuditService:
    """Writes one ``[AUDIT]`` log record per audited action."""

    def __init__(self, source: str = "registry-match"):
        self.source = source

    async def log(
        self, action: AuditAction, metadata: Mapping[str, str] | None = None
    ) -> None:
        logger.info(
            "[AUDIT] Action: %s, Source: %s, Timestamp: %s, Metadata: %s",
            action.value,
            self.source,
            datetime.now(timezone.utc).isoformat(),
            json.dumps(dict(metadata or {}), sort_keys=True),
        )
