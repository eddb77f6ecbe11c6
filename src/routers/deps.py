"""Shared dependencies for routers."""

from typing import Annotated

from fastapi import Depends

from src.clients.audit import get_audit_service
from src.clients.registry import get_registry_service
from src.matching.engine import MatchingConfig, MatchingEngine
from src.matching.reconciliation import ReconciliationEngine
from src.services.audit_service import AuditService
from src.services.registry_service import RegistryService
from src.settings import settings

# Typed dependency aliases for use in endpoint signatures
RegistryServiceDep = Annotated[RegistryService, Depends(get_registry_service)]
AuditServiceDep = Annotated[AuditService, Depends(get_audit_service)]


def get_matching_engine(
    registry: RegistryServiceDep,
    audit: AuditServiceDep,
) -> MatchingEngine:
    """Build a matching engine over the registry gateway."""
    return MatchingEngine(
        registry=registry,
        lookup=registry,
        audit=audit,
        config=MatchingConfig.from_settings(settings),
    )


MatchingEngineDep = Annotated[MatchingEngine, Depends(get_matching_engine)]


def get_reconciliation_engine(
    matcher: MatchingEngineDep,
    registry: RegistryServiceDep,
) -> ReconciliationEngine:
    """Build a reconciliation engine sharing the request's matching engine."""
    return ReconciliationEngine(matcher=matcher, lookup=registry)


ReconciliationEngineDep = Annotated[ReconciliationEngine, Depends(get_reconciliation_engine)]
