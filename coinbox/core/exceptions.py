"""Error taxonomy shared by the workflow engine and its collaborators."""

from __future__ import annotations

from typing import Sequence


class CoinboxError(Exception):
    """Base class for all domain errors."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class RemoteServiceError(CoinboxError):
    """The remote wallet service failed or is unreachable."""

    status_code = 503


class ValidationError(CoinboxError):
    """Malformed input, e.g. a missing wallet client or bad outputs."""

    status_code = 422


class CredentialsError(ValidationError):
    """A stored credentials blob could not be read back."""


class NotFoundError(CoinboxError):
    """The requested wallet or proposal is not in the caller's visible set."""

    status_code = 404


class PersistenceError(CoinboxError):
    """A store read or write failed."""


class DuplicateExecutionError(CoinboxError):
    """A reclaimed job run reached a step that must not be repeated."""

    status_code = 409


class PartialAggregationError(CoinboxError):
    """One wallet of a user's set could not be reconstructed."""

    status_code = 503

    def __init__(self, wallet_id: str, cause: BaseException) -> None:
        super().__init__(f"Wallet {wallet_id} could not be loaded: {cause}")
        self.wallet_id = wallet_id
        self.cause = cause


class PipelineError(CoinboxError):
    """A pipeline step failed; carries the step identity and the completed steps."""

    def __init__(
        self,
        *,
        pipeline: str,
        step_index: int,
        step_name: str,
        cause: BaseException,
        completed_steps: Sequence[str] = (),
    ) -> None:
        super().__init__(f"{pipeline}: step {step_index} ({step_name}) failed: {cause}")
        self.pipeline = pipeline
        self.step_index = step_index
        self.step_name = step_name
        self.cause = cause
        self.completed_steps = list(completed_steps)
        self.status_code = getattr(cause, "status_code", 500)


__all__ = [
    "CoinboxError",
    "RemoteServiceError",
    "ValidationError",
    "CredentialsError",
    "NotFoundError",
    "PersistenceError",
    "DuplicateExecutionError",
    "PartialAggregationError",
    "PipelineError",
]
