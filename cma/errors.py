"""Error taxonomy for the CMA engine.

Only ValidationError and NotFound cross the library boundary. ProviderError
is absorbed by the comp search orchestrator; RenderError comes from the
rendering collaborator and is passed through untouched.
"""


class CmaError(Exception):
    """Base class for all CMA engine errors."""


class ValidationError(CmaError, ValueError):
    """Malformed or insufficient input (bad criteria, subject missing data)."""


class NotFound(CmaError, LookupError):
    """A referenced property id does not resolve."""

    def __init__(self, property_id):
        self.property_id = property_id
        super().__init__(f"Property not found: {property_id}")


class ProviderError(CmaError):
    """An external data source failed (non-2xx, malformed payload, network)."""

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class RenderError(CmaError):
    """The rendering collaborator failed to turn a report model into bytes."""
