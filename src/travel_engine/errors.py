"""Error taxonomy shared by the estimation engine and its collaborators."""

from __future__ import annotations


class TravelEngineError(Exception):
    """Base class for engine errors."""


class InvalidCoordinate(TravelEngineError, ValueError):
    """A latitude/longitude pair is NaN or outside its valid range."""


class GeocodeUnavailable(TravelEngineError):
    """The geocoding collaborator could not be reached or timed out."""


class StoreUnavailable(TravelEngineError):
    """The record store failed or timed out; the caller should retry."""


class PreconditionViolated(TravelEngineError):
    """An operation was invoked with input its caller was required to validate."""


class DecisionNotFound(TravelEngineError, KeyError):
    """No authorization decision exists for the given draft key."""

    def __str__(self) -> str:
        return f"No authorization decision for draft '{self.args[0]}'." if self.args else "Decision not found."


class AuthorizationError(TravelEngineError):
    """A workflow transition is not allowed from the decision's current state."""
