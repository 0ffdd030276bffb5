"""Error taxonomy for gateway lookups and timeline validation."""

from __future__ import annotations


class TravelBufferError(Exception):
    """Base class for engine errors."""


class GatewayError(TravelBufferError):
    """A traffic or weather lookup could not produce a snapshot."""


class GatewayTimeout(GatewayError):
    pass


class GatewayUnavailable(GatewayError):
    """Network failure, quota exhaustion, or a non-2xx/non-OK provider reply."""


class MalformedSnapshot(GatewayError):
    """The provider answered, but not with data a snapshot can be built from."""


class MalformedLocation(TravelBufferError):
    """A location reference has no usable coordinates or cannot be resolved."""


class TimelineValidationError(TravelBufferError, ValueError):
    """The input timeline cannot be reconciled at all."""
