"""Error taxonomy shared by the workflow core, stages and providers."""

from __future__ import annotations

from pathlib import Path


class AbqMediaError(Exception):
    """Base class for all errors raised by this package."""


class ContextValidationError(AbqMediaError, ValueError):
    """A field required to enter a state is missing from the context."""

    def __init__(self, message: str, *, field: str, state: str) -> None:
        super().__init__(message)
        self.field = field
        self.state = state


class RoutingError(AbqMediaError, ValueError):
    """A discriminant field holds a value outside its enumerated domain."""

    def __init__(self, message: str, *, field: str | None = None, value: object = None) -> None:
        super().__init__(message)
        self.field = field
        self.value = value


class IllegalTransitionError(AbqMediaError, ValueError):
    """A handler requested an edge that the transition map does not declare."""

    def __init__(self, message: str, *, from_state: str, to_state: str) -> None:
        super().__init__(message)
        self.from_state = from_state
        self.to_state = to_state


class UserCancelledError(AbqMediaError):
    """The user cancelled an interactive prompt."""

    def __init__(self, state: str) -> None:
        super().__init__(f"Cancelled by user during {state}")
        self.state = state


class CheckpointError(AbqMediaError):
    """A checkpoint file is missing or cannot be decoded."""

    def __init__(self, message: str, *, path: Path) -> None:
        super().__init__(message)
        self.path = path


class ProviderError(AbqMediaError):
    """An external generation, transcription or speech provider failed."""


class CaptionsUnavailableError(ProviderError):
    """No captions could be fetched for a video by any strategy."""
