"""Typed failure reasons raised by the layover engine.

Routers map `error` codes onto HTTP status codes; services never know about
transport. Provider failures are not exceptions (see models.ProviderFailure).
"""


class LayoverEngineError(Exception):
    error = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.error, "message": self.message}


class InvalidBookingRequest(LayoverEngineError):
    error = "invalid_request"


class NoValidSelection(LayoverEngineError):
    """Nothing the user selected can be booked any more."""

    error = "no_valid_selection"

    def __init__(self, message: str, failed: dict[str, str] | None = None):
        super().__init__(message)
        self.failed = failed or {}

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "unavailable_experiences": sorted(self.failed),
            "reasons": dict(self.failed),
        }


class PartialUnavailability(LayoverEngineError):
    """Some selected experiences failed their re-check; nothing was booked."""

    error = "experiences_unavailable"

    def __init__(self, failed: dict[str, str]):
        ids = ", ".join(sorted(failed))
        super().__init__(f"Some selected experiences are no longer available: {ids}")
        self.failed = failed

    @property
    def unavailable(self) -> list[str]:
        return sorted(self.failed)

    def to_dict(self) -> dict:
        return {
            **super().to_dict(),
            "unavailable_experiences": self.unavailable,
            "reasons": dict(self.failed),
        }


class ComputationInvariantViolation(LayoverEngineError):
    """A pricing or scoring result broke an invariant. Always a bug."""

    error = "invariant_violation"


def ensure(condition: bool, message: str) -> None:
    if not condition:
        raise ComputationInvariantViolation(message)
