"""
Per-tool workflow state machine.

A workflow is always in exactly one of four states:

    Upload      waiting for files (may retain items kept from a failed run)
    Processing  a job is running, with progress 0-100 and a status message
    Selection   inputs are ready for review, reordering or page selection
    Complete    a conversion produced its result

Allowed moves are upload -> processing -> selection -> processing -> complete,
processing -> upload when a job fails or accepts nothing, selection -> upload
when the last item is removed, and any -> upload on start over.

Every job runs under a generation number. Starting a job or starting over
bumps the generation, and a finishing job whose generation is no longer
current is ignored rather than applied to state it no longer owns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .errors import BaseAppError, ErrorCode, ErrorSeverity, ErrorType
from .models import TransformResult

logger = logging.getLogger(__name__)


class WorkflowError(BaseAppError):
    """An illegal state transition was requested."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(
            type=ErrorType.SYSTEM,
            code=ErrorCode.INVALID_STATE,
            user_message=message,
            severity=ErrorSeverity.LOW,
            context=context or {},
        )


@dataclass(frozen=True)
class Upload:
    items: tuple[Any, ...] = ()
    name = "upload"


@dataclass(frozen=True)
class Processing:
    progress: int = 0
    message: str = ""
    name = "processing"


@dataclass(frozen=True)
class Selection:
    items: tuple[Any, ...]
    name = "selection"

    def __post_init__(self) -> None:
        if not self.items:
            raise WorkflowError("Selection requires at least one item")


@dataclass(frozen=True)
class Complete:
    result: TransformResult
    name = "complete"

    def __post_init__(self) -> None:
        if self.result is None:
            raise WorkflowError("Complete requires a result")


WorkflowState = Upload | Processing | Selection | Complete
StateListener = Callable[[WorkflowState], None]


class Workflow:
    """Holds the current state and enforces the allowed transitions."""

    def __init__(self, name: str = "workflow") -> None:
        self._name = name
        self._state: WorkflowState = Upload()
        self._generation = 0
        self._listeners: list[StateListener] = []

    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_processing(self) -> bool:
        return isinstance(self._state, Processing)

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    def _set(self, state: WorkflowState) -> None:
        previous = self._state
        self._state = state
        if type(previous) is not type(state):
            logger.debug(f"{self._name}: {previous.name} -> {state.name} (generation {self._generation})")
        for listener in list(self._listeners):
            listener(state)

    def _require(self, *allowed: type, action: str) -> None:
        if not isinstance(self._state, allowed):
            raise WorkflowError(
                f"Cannot {action} while in {self._state.name} state",
                context={"workflow": self._name, "state": self._state.name},
            )

    def is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _stale(self, generation: int, action: str) -> bool:
        if generation != self._generation or not isinstance(self._state, Processing):
            logger.info(f"{self._name}: ignoring {action} from superseded job (generation {generation})")
            return True
        return False

    def begin(self, message: str = "", expected_generation: int | None = None) -> int:
        """
        Enter processing for a new job.

        Args:
            message: Initial status message
            expected_generation: Generation the job was queued under; a job
                queued before a start over is refused

        Returns:
            The job's generation number

        Raises:
            WorkflowError: If a job is already running, the workflow is
                complete, or the job was superseded before it started
        """
        self._require(Upload, Selection, action="start processing")
        if expected_generation is not None and expected_generation != self._generation:
            raise WorkflowError(
                "This job was superseded before it started",
                context={"workflow": self._name, "generation": expected_generation},
            )
        self._generation += 1
        self._set(Processing(0, message))
        return self._generation

    def progress(self, generation: int, percent: int, message: str | None = None) -> bool:
        """Update progress of the running job. Returns False for a stale job."""
        if self._stale(generation, "progress"):
            return False
        current = self._state
        assert isinstance(current, Processing)
        percent = max(0, min(100, int(percent)))
        self._set(Processing(percent, current.message if message is None else message))
        return True

    def to_selection(self, generation: int, items: list[Any] | tuple[Any, ...]) -> bool:
        """Finish a job by showing its inputs for review. Returns False for a stale job."""
        if self._stale(generation, "selection"):
            return False
        self._set(Selection(tuple(items)))
        return True

    def complete(self, generation: int, result: TransformResult) -> bool:
        """
        Finish a job with its result. Returns False for a stale job.

        Raises:
            WorkflowError: If result is missing
        """
        if result is None:
            raise WorkflowError("Cannot complete without a result")
        if self._stale(generation, "completion"):
            return False
        self._set(Complete(result))
        return True

    def fail(self, generation: int, retained: list[Any] | tuple[Any, ...] = ()) -> bool:
        """Return to upload after a failed job, keeping any items that already succeeded."""
        if self._stale(generation, "failure"):
            return False
        self._set(Upload(tuple(retained)))
        return True

    def update_selection(self, items: list[Any] | tuple[Any, ...]) -> None:
        """
        Replace the reviewed items.

        In selection, an empty list returns to upload. In upload, the
        retained items are replaced and the state stays upload.

        Raises:
            WorkflowError: If a job is running or the workflow is complete
        """
        self._require(Upload, Selection, action="change the selection")
        if isinstance(self._state, Upload):
            self._set(Upload(tuple(items)))
        else:
            self._set(Selection(tuple(items)) if items else Upload())

    def reset(self) -> None:
        """Start over from any state. Any running job becomes stale."""
        self._generation += 1
        self._set(Upload())
