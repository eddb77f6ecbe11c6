"""Registry gateway service dependency provider."""

from src.services.registry_service import RegistryService

# Module-level singleton
_registry_service: RegistryService | None = None


def get_registry_service() -> RegistryService:
    """Get the registry service singleton."""
    global _registry_service
    if _registry_service is None:
        _registry_service = RegistryService()
    return _registry_service


async def close_registry_service() -> None:
    """Close the registry service HTTP client, if one was created."""
    global _registry_service
    if _registry_service is not None:
        await _registry_service.close()
        _registry_service = None
