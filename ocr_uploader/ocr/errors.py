from __future__ import annotations


class EngineError(Exception):
    """Base class for failures raised by a vision engine."""


class MalformedImageError(EngineError):
    """The provider could not decode the image it was sent."""


class PolicyViolationError(EngineError):
    """The provider refused the request on content-policy grounds."""


class EngineTimeoutError(EngineError):
    """The provider did not answer within the configured timeout."""


class EngineConfigurationError(EngineError):
    """The engine is missing a credential or SDK it needs."""
