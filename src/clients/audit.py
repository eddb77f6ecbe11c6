"""Audit service dependency provider."""

from src.services.audit_service import AuditService

# Module-level singleton
_audit_service: AuditService | None = None


def get_audit_service() -> AuditService:
    """Get the audit service singleton."""
    global _audit_service
    if _audit_service is None:
        _audit_service = AuditService()
    return _audit_service
