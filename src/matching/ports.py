"""
Collaborators consumed by the matching and reconciliation engines.

The registry service in ``src.services.registry_service`` implements both
registry ports; ``src.services.audit_service`` implements the audit port.
"""

from collections.abc import Mapping
from typing import Protocol

from src.matching.models import (
    AuditAction,
    DemographicLookupResult,
    PersonRecord,
    RegistrySearchResult,
    SearchQuery,
    ValidationIssue,
)


class RegistrySearchPort(Protocol):
    """Searches the registry with one query."""

    async def search(self, query: SearchQuery) -> RegistrySearchResult | None: ...


class RegistryLookupPort(Protocol):
    """Fetches full registry demographics for an NHS number."""

    async def lookup_by_identifier(self, nhs_number: str) -> DemographicLookupResult: ...


class ValidationPort(Protocol):
    """Reports field validation failures for a person record."""

    def validate(self, record: PersonRecord) -> list[ValidationIssue]: ...


class AuditPort(Protocol):
    """Records an audit event."""

    async def log(
        self, action: AuditAction, metadata: Mapping[str, str] | None = None
    ) -> None: ...
