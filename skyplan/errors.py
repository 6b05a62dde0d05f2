class SkyplanError(Exception):
    """Base exception for skyplan errors."""


class InvalidInput(SkyplanError, ValueError):
    """Raised for malformed requests: out-of-range angles, NaN, unsupported frames."""


class ProviderFailure(SkyplanError):
    """Raised when the ephemeris provider cannot answer a query."""
