"""Custom exceptions for the registry matching service."""


class RegistryMatchError(Exception):
    """Base exception for registry matching errors."""

    pass


class ConfigurationError(RegistryMatchError):
    """A match attempt was configured in a way that cannot produce queries."""

    pass


class InvalidStrategyError(ConfigurationError):
    """Unknown search strategy or unsupported strategy version."""

    pass


class RegistryError(RegistryMatchError):
    """The registry gateway returned a response that could not be used."""

    pass
