"""Ordered, forward-only multi-step workflows.

A ``Pipeline`` feeds the output of each ``WorkflowStep`` into the next one and
stops at the first failure. Nothing already done by earlier steps is undone:
the failed ``PipelineOutcome`` lists the completed steps so that a
reconciliation process can find remote resources left behind (for instance a
remote wallet that was created but never recorded locally).

Steps are coroutines ``(context, value) -> Result``. Returning ``Err`` and
raising are equivalent; a plain return value is treated as ``Ok``.

A step marked ``idempotent=False`` must not run twice for the same work. When
the context reports a reclaimed job run (``context.is_reclaimed``) such a step
only runs if the pipeline derives a dedup key from its input, meaning some
other layer (a unique constraint, a lookup by that key) absorbs the repeat.
Otherwise the run fails at that step with ``DuplicateExecutionError``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, Sequence, TypeVar, Union

from coinbox.core.exceptions import DuplicateExecutionError, PipelineError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True, slots=True)
class Err:
    error: BaseException


Result = Union[Ok[T], Err]
StepFunction = Callable[[Any, Any], Awaitable[Any]]
DedupKey = Callable[[Any], Optional[str]]


@dataclass(frozen=True, slots=True)
class WorkflowStep:
    name: str
    run: StepFunction
    # Steps that are not safe to repeat need an external dedup key.
    idempotent: bool = True

    async def execute(self, context: Any, value: Any) -> Result[Any]:
        try:
            result = await self.run(context, value)
        except Exception as exc:  # pylint: disable=broad-except
            return Err(exc)
        if isinstance(result, (Ok, Err)):
            return result
        return Ok(result)


def step(name: str | None = None, *, idempotent: bool = True) -> Callable[[StepFunction], WorkflowStep]:
    """Decorator turning a coroutine function into a ``WorkflowStep``."""

    def decorator(func: StepFunction) -> WorkflowStep:
        return WorkflowStep(name=name or func.__name__, run=func, idempotent=idempotent)

    return decorator


@dataclass(slots=True)
class PipelineOutcome:
    pipeline: str
    completed_steps: list[str] = field(default_factory=list)
    value: Any = None
    failure: Optional[PipelineError] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @property
    def failed_step(self) -> Optional[str]:
        return self.failure.step_name if self.failure else None

    def unwrap(self) -> Any:
        if self.failure is not None:
            raise self.failure
        return self.value

    def partial_state(self) -> dict[str, Any]:
        """Marker describing how far a failed run got."""
        return {
            "pipeline": self.pipeline,
            "completed_steps": list(self.completed_steps),
            "failed_step": self.failed_step,
            "failed_step_index": self.failure.step_index if self.failure else None,
        }


class Pipeline:
    def __init__(self, name: str, steps: Sequence[WorkflowStep], *, dedup_key: DedupKey | None = None) -> None:
        if not steps:
            raise ValueError("A pipeline needs at least one step")
        names = [item.name for item in steps]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate step names in pipeline {name!r}: {names}")
        self.name = name
        self._steps = tuple(steps)
        self._dedup_key = dedup_key

    def __repr__(self) -> str:
        return f"Pipeline({self.name!r}, steps={list(self.step_names)!r})"

    @property
    def step_names(self) -> tuple[str, ...]:
        return tuple(item.name for item in self._steps)

    @property
    def steps(self) -> tuple[WorkflowStep, ...]:
        return self._steps

    def dedup_key(self, value: Any) -> Optional[str]:
        return self._dedup_key(value) if self._dedup_key is not None else None

    async def run(self, context: Any, value: Any) -> PipelineOutcome:
        reclaimed = bool(getattr(context, "is_reclaimed", False))
        dedup_key = self.dedup_key(value) if reclaimed else None
        completed: list[str] = []
        for index, current in enumerate(self._steps):
            if reclaimed and not current.idempotent and not dedup_key:
                result: Result[Any] = Err(
                    DuplicateExecutionError(
                        f"{current.name} is not idempotent and this reclaimed run has no dedup key"
                    )
                )
            else:
                logger.debug("%s: running step %d (%s)", self.name, index, current.name)
                result = await current.execute(context, value)
            if isinstance(result, Err):
                failure = PipelineError(
                    pipeline=self.name,
                    step_index=index,
                    step_name=current.name,
                    cause=result.error,
                    completed_steps=completed,
                )
                failure.__cause__ = result.error
                logger.warning("%s", failure)
                return PipelineOutcome(pipeline=self.name, completed_steps=completed, failure=failure)
            value = result.value
            completed.append(current.name)
        return PipelineOutcome(pipeline=self.name, completed_steps=completed, value=value)


__all__ = [
    "DedupKey",
    "Err",
    "Ok",
    "Pipeline",
    "PipelineOutcome",
    "Result",
    "StepFunction",
    "WorkflowStep",
    "step",
]
