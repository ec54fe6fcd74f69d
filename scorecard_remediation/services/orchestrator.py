"""
Remediation Orchestrator

Entry point used by the UI layer to:
- build an aggregated compliance view of an entity
- act on one failing or outstanding rule

A remediation runs strictly in order: action, then evaluation trigger, then
polling. An automated action that fails aborts the call before evaluation is
triggered.
"""
import asyncio
from typing import Any, Callable, Dict, List, Optional, Union

from scorecard_remediation.clients.score_client import ScoreClient
from scorecard_remediation.core.exceptions import ActionError, ScorecardError
from scorecard_remediation.core.logging import logger
from scorecard_remediation.remediation.base import ActionContext, RemediationAction
from scorecard_remediation.remediation.registry import NO_ACTION, RemediationActionRegistry
from scorecard_remediation.schemas.remediation import (
    ActionKind,
    RemediationOutcome,
    RuleRef,
    RunState,
    RunStatus,
)
from scorecard_remediation.schemas.scorecard import ComplianceView, EntityScore
from scorecard_remediation.services.convergence import EvaluationConvergenceLoop

Notify = Callable[[str], None]

FINAL_NOTICES = {
    RunStatus.SUCCEEDED: "done",
    RunStatus.TIMED_OUT: "timed out waiting for evaluation",
}


class RemediationOrchestrator:
    def __init__(
        self,
        client: ScoreClient,
        registry: RemediationActionRegistry,
        loop: Optional[EvaluationConvergenceLoop] = None,
        max_attempts: Optional[int] = None,
        interval_ms: Optional[int] = None,
    ):
        self.client = client
        self.registry = registry
        self.loop = loop or EvaluationConvergenceLoop(client)
        self.max_attempts = max_attempts
        self.interval_ms = interval_ms

    def is_running(self, scorecard_tag: str, entity_tag: str) -> bool:
        return self.loop.is_active(scorecard_tag, entity_tag)

    async def get_compliance_view(self, entity_tag: str) -> ComplianceView:
        """
        List the entity's scorecards and fetch every score concurrently.

        A scorecard whose score is missing or could not be fetched is left out
        of `scores` and listed in `unscored`. Errors listing the scorecards
        themselves propagate.
        """
        scorecards = await self.client.list_scorecards(entity_tag)

        results = await asyncio.gather(
            *(self.client.fetch_score(s.tag, entity_tag) for s in scorecards),
            return_exceptions=True,
        )

        scores: Dict[str, EntityScore] = {}
        unscored: List[str] = []
        # Assemble in scorecard order, not completion order
        for scorecard, result in zip(scorecards, results):
            if isinstance(result, (ScorecardError, ValueError)):
                logger.warning(
                    f"Could not fetch score: {result}",
                    extra={"entity_tag": entity_tag, "scorecard_tag": scorecard.tag},
                )
                unscored.append(scorecard.tag)
            elif isinstance(result, BaseException):
                raise result
            elif result is None:
                unscored.append(scorecard.tag)
            else:
                scores[scorecard.tag] = result

        return ComplianceView(
            entity_tag=entity_tag,
            scorecards=scorecards,
            scores=scores,
            unscored=unscored,
        )

    async def remediate(
        self,
        rule: Union[RuleRef, Dict[str, Any]],
        scorecard_tag: str,
        entity_tag: str,
        notify: Optional[Notify] = None,
        action_context: Optional[Dict[str, Any]] = None,
    ) -> RemediationOutcome:
        """
        Run the remediation for `rule`, then re-evaluate until converged.

        Raises ConcurrentRunError if the pair already has an active run and
        ActionError if an automated action fails. Evaluation failures and
        timeouts are reported through the outcome status.
        """
        if isinstance(rule, dict):
            rule = RuleRef(**rule)

        notices: List[str] = []

        def emit(message: str) -> None:
            notices.append(message)
            if notify is not None:
                notify(message)

        # Claimed before the first await so overlapping calls cannot both pass
        state = self.loop.begin(scorecard_tag, entity_tag)

        outcome = RemediationOutcome(status=RunStatus.TRIGGERING)
        try:
            action = self.registry.lookup(rule.title, scorecard_tag)
            if action is NO_ACTION:
                emit(f"no automated remediation for '{rule.title}'")
            else:
                await self._run_action(action, rule, state, outcome, emit, action_context or {})
        except BaseException as e:
            # Evaluation is never triggered against an unapplied fix
            self.loop.abort(state, e if isinstance(e, Exception) else None)
            raise

        def on_transition(run_state: RunState) -> None:
            if run_state.status == RunStatus.POLLING:
                emit("refreshing…")

        emit("triggering evaluation…")
        result = await self.loop.run(
            scorecard_tag,
            entity_tag,
            max_attempts=self.max_attempts,
            interval_ms=self.interval_ms,
            state=state,
            observer=on_transition,
        )

        if result.status == RunStatus.FAILED:
            emit(f"failed: {result.state.last_error}")
        else:
            emit(FINAL_NOTICES[result.status])

        outcome.status = result.status
        outcome.notices = notices
        outcome.final_next_steps = result.next_steps
        if result.status == RunStatus.FAILED and result.state.last_error is not None:
            outcome.error = str(result.state.last_error)

        logger.info(
            f"Remediation of '{rule.title}' finished: {result.status.value}",
            extra={"entity_tag": entity_tag, "scorecard_tag": scorecard_tag},
        )
        return outcome

    async def _run_action(
        self,
        action: RemediationAction,
        rule: RuleRef,
        state: RunState,
        outcome: RemediationOutcome,
        emit: Notify,
        extra: Dict[str, Any],
    ) -> None:
        context = ActionContext(
            entity_tag=state.entity_tag,
            scorecard_tag=state.scorecard_tag,
            extra=extra,
        )
        outcome.action_kind = action.kind
        outcome.action_name = action.name

        if action.kind == ActionKind.AUTOMATED:
            emit(f"{action.progress_label}…")
            try:
                await action.execute(rule, context)
            except ActionError as e:
                emit(f"failed: {e}")
                raise
            return

        # Manual actions are a cue for a human, not a fix; carry on
        result = await action.execute(rule, context)
        outcome.reference = result.reference
        emit(f"{result.message} {result.reference}".strip())
