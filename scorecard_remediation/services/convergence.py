"""
Evaluation convergence loop

Drives a (scorecard, entity) pair from stale to freshly evaluated:

    Idle -> Triggering -> Polling -> Succeeded | TimedOut | Failed

Only absence of convergence is retried. Hard upstream or transport errors end
the run as Failed. Every terminal state releases the pair so the next run is
accepted.
"""
import asyncio
from typing import Awaitable, Callable, Dict, List, Optional, Protocol, Tuple

from scorecard_remediation.core.config import settings
from scorecard_remediation.core.exceptions import (
    ConcurrentRunError,
    ConvergenceTimeout,
    NetworkError,
    UpstreamError,
)
from scorecard_remediation.core.logging import logger
from scorecard_remediation.schemas.remediation import ConvergenceResult, RunState, RunStatus
from scorecard_remediation.schemas.scorecard import NextStepGroup, remaining_rules


class EvaluationBackend(Protocol):
    async def trigger_evaluation(self, scorecard_tag: str, entity_tag: str) -> None: ...

    async def fetch_next_steps(self, scorecard_tag: str, entity_tag: str) -> List[NextStepGroup]: ...


RunKey = Tuple[str, str]
Sleeper = Callable[[float], Awaitable[None]]
TransitionHook = Callable[[RunState], None]


class EvaluationConvergenceLoop:
    def __init__(
        self,
        client: EvaluationBackend,
        sleep: Optional[Sleeper] = None,
        on_transition: Optional[TransitionHook] = None,
        active_runs: Optional[Dict[RunKey, RunState]] = None,
    ):
        self.client = client
        self._sleep = sleep or asyncio.sleep
        self._on_transition = on_transition
        # entity_tag, scorecard_tag -> active run; may be shared between loops
        self._active: Dict[RunKey, RunState] = active_runs if active_runs is not None else {}

    def is_active(self, scorecard_tag: str, entity_tag: str) -> bool:
        return (entity_tag, scorecard_tag) in self._active

    def _transition(
        self,
        state: RunState,
        status: RunStatus,
        observer: Optional[TransitionHook] = None,
    ) -> None:
        state.status = status
        logger.info(
            f"Run {status.value} (attempt {state.attempt})",
            extra={
                "entity_tag": state.entity_tag,
                "scorecard_tag": state.scorecard_tag,
                "run_status": status.value,
            },
        )
        if self._on_transition is not None:
            self._on_transition(state)
        if observer is not None:
            observer(state)

    def begin(self, scorecard_tag: str, entity_tag: str) -> RunState:
        """
        Claim the pair and move it to Triggering.

        Raises ConcurrentRunError if a run is already active. Has no
        suspension point, so check-and-claim cannot interleave.
        """
        key = (entity_tag, scorecard_tag)
        if key in self._active:
            raise ConcurrentRunError(entity_tag, scorecard_tag)

        state = RunState(entity_tag=entity_tag, scorecard_tag=scorecard_tag)
        self._active[key] = state
        self._transition(state, RunStatus.TRIGGERING)
        return state

    def abort(self, state: RunState, error: Optional[Exception] = None) -> None:
        """End a claimed run as Failed without touching the remote side"""
        self._finish(state, RunStatus.FAILED, error)

    def _finish(
        self,
        state: RunState,
        status: RunStatus,
        error: Optional[Exception] = None,
        observer: Optional[TransitionHook] = None,
    ) -> None:
        state.last_error = error
        self._active.pop((state.entity_tag, state.scorecard_tag), None)
        self._transition(state, status, observer)

    async def run(
        self,
        scorecard_tag: str,
        entity_tag: str,
        max_attempts: Optional[int] = None,
        interval_ms: Optional[int] = None,
        state: Optional[RunState] = None,
        observer: Optional[TransitionHook] = None,
    ) -> ConvergenceResult:
        """
        Trigger re-evaluation and poll next steps until nothing is left to do.

        `state` is a run already claimed with `begin`; without it the pair is
        claimed here. `observer` sees every transition of this run only.
        Returns the final state and the last observed groups.
        """
        if max_attempts is None:
            max_attempts = settings.EVALUATION_MAX_ATTEMPTS
        if interval_ms is None:
            interval_ms = settings.EVALUATION_POLL_INTERVAL_MS
        if max_attempts < 0 or interval_ms < 0:
            error = ValueError("max_attempts and interval_ms must be >= 0")
            if state is not None:
                self.abort(state, error)
            raise error

        if state is None:
            state = self.begin(scorecard_tag, entity_tag)
        elif not state.status.is_active or not self.is_active(scorecard_tag, entity_tag):
            raise ValueError("state does not belong to an active run for this pair")

        next_steps: List[NextStepGroup] = []
        try:
            await self.client.trigger_evaluation(scorecard_tag, entity_tag)
            self._transition(state, RunStatus.POLLING, observer)

            while state.attempt < max_attempts:
                next_steps = await self.client.fetch_next_steps(scorecard_tag, entity_tag)
                remaining = remaining_rules(next_steps)
                if remaining == 0:
                    self._finish(state, RunStatus.SUCCEEDED, observer=observer)
                    return ConvergenceResult(state=state, next_steps=next_steps)

                state.attempt += 1
                logger.debug(
                    f"{remaining} rules outstanding after poll {state.attempt}/{max_attempts}",
                    extra={"entity_tag": entity_tag, "scorecard_tag": scorecard_tag},
                )
                await self._sleep(interval_ms / 1000)

            # Budget exhausted: one last look, reported whatever it says
            next_steps = await self.client.fetch_next_steps(scorecard_tag, entity_tag)
            self._finish(
                state,
                RunStatus.TIMED_OUT,
                ConvergenceTimeout(state.attempt, next_steps),
                observer,
            )
            return ConvergenceResult(state=state, next_steps=next_steps)

        except (UpstreamError, NetworkError) as e:
            logger.error(
                f"Evaluation run failed: {e}",
                extra={"entity_tag": entity_tag, "scorecard_tag": scorecard_tag},
            )
            self._finish(state, RunStatus.FAILED, e, observer)
            return ConvergenceResult(state=state, next_steps=next_steps)
        finally:
            # Unexpected errors and cancellation must not leave the pair locked
            if state.status.is_active:
                self._finish(state, RunStatus.FAILED, state.last_error, observer)
