"""ProofPipeline -- drives a proving request through to an on-chain submission.

Flow:
    run(request)   validate → generate (local engine or remote service) →
                   verify (local only) → publish ProofResult
    submit()       extract proof inputs → relay (sponsored, bounded wait) →
                   publish SubmissionResult
    reset()        back to idle; anything still in flight is detached

State is an immutable PipelineState snapshot replaced on every transition.
Listeners registered with subscribe() see every snapshot, in order.

Usage:
    pipeline = ProofPipeline(relay=HttpRelay(url), contract_address="0x...")
    await pipeline.run(request)
    await pipeline.submit()
    print(pipeline.state.submission_result)
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Mapping

from zkclaim.artifact import validate_request
from zkclaim.engine import DEFAULT_CONDUCTOR_URL, LocalProver
from zkclaim.errors import (
    ClaimError,
    EngineError,
    NoProofError,
    PipelineBusyError,
    RemoteProvingError,
    SubmissionFailedError,
    SubmissionTimeoutError,
)
from zkclaim.models import (
    COMPLETE_PERCENT,
    INITIAL_STATE,
    LOCAL_SCHEDULE,
    REMOTE_SCHEDULE,
    Phase,
    PipelineState,
    ProofResult,
    ProvingRequest,
    Step,
    SubmissionResult,
)
from zkclaim.relay import Relay, RelayError, RelayReceipt, extract_submission_inputs
from zkclaim.remote import RemoteProver

logger = logging.getLogger(__name__)

SUBMISSION_TIMEOUT_SECONDS = 60.0

Listener = Callable[[PipelineState], None]


class ProofPipeline:
    """Sequential, non re-entrant proof and submission workflow.

    One run() and, independently, one submit() may be in flight at a time.
    A second concurrent call raises PipelineBusyError and leaves state alone.
    """

    def __init__(
        self,
        relay: Relay | None = None,
        *,
        contract_address: str | None = None,
        local_prover: LocalProver | None = None,
        remote_prover: RemoteProver | None = None,
        submission_timeout: float = SUBMISSION_TIMEOUT_SECONDS,
    ):
        self.relay = relay
        self.contract_address = contract_address
        self.local_prover = local_prover or LocalProver()
        self.remote_prover = remote_prover or RemoteProver()
        self.submission_timeout = submission_timeout

        self._state = INITIAL_STATE
        self._listeners: list[Listener] = []
        # Bumped by reset(); work started under an older epoch is detached.
        self._epoch = 0
        self._run_owner: object | None = None
        self._submit_owner: object | None = None

    @classmethod
    def from_config(cls, config: dict, platform_id: str, relay: Relay | None = None) -> "ProofPipeline":
        """Build a pipeline wired from loaded config for one platform."""
        from zkclaim.platforms import get_platform
        from zkclaim.relay import HttpRelay

        platform = get_platform(config, platform_id)
        engine_cfg = config.get("engine", {})
        relay_cfg = config.get("relay", {})
        if relay is None and relay_cfg.get("url"):
            relay = HttpRelay(relay_cfg["url"], timeout=float(relay_cfg.get("http_timeout", 90)))
        return cls(
            relay=relay,
            contract_address=platform.get("entrypoint"),
            local_prover=LocalProver(
                engine_cfg.get("module"),
                conductor_url=engine_cfg.get("conductor_url") or DEFAULT_CONDUCTOR_URL,
            ),
            remote_prover=RemoteProver(timeout=float(config.get("remote_timeout", 300))),
            submission_timeout=float(relay_cfg.get("submission_timeout", SUBMISSION_TIMEOUT_SECONDS)),
        )

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        """Current snapshot. Never mutate it; it is replaced on every change."""
        return self._state

    @property
    def is_running(self) -> bool:
        return self._run_owner is not None

    @property
    def is_submitting(self) -> bool:
        return self._submit_owner is not None

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register `listener` for every new snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, epoch: int, state: PipelineState) -> bool:
        if epoch != self._epoch:
            return False
        self._state = state
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Pipeline listener failed")
        return True

    def _update(self, epoch: int, **changes: Any) -> bool:
        return self._publish(epoch, self._state.evolve(**changes))

    # ------------------------------------------------------------------
    # run
    # ------------------------------------------------------------------

    async def run(self, request: ProvingRequest) -> None:
        """Generate (and, locally, verify) a proof for `request`.

        Raises the ClaimError that ended the run after recording it in
        `state.last_error`.
        """
        if self._run_owner is not None:
            raise PipelineBusyError("A proof run is already in progress")
        if self._submit_owner is not None:
            raise PipelineBusyError("Cannot start a new run while the current proof is being submitted")
        owner = object()
        self._run_owner = owner
        epoch = self._epoch
        try:
            await self._run(request, epoch)
        finally:
            if self._run_owner is owner:
                self._run_owner = None

    async def _run(self, request: ProvingRequest, epoch: int) -> None:
        # Rejected input leaves phase, progress and any existing proof untouched.
        try:
            validate_request(request)
        except ClaimError as e:
            logger.info("Rejected proving request: %s", e)
            self._update(epoch, last_error=e)
            raise

        # A new run replaces the previous proof and anything derived from it.
        self._update(
            epoch,
            phase=Phase.RUNNING,
            current_step=Step.IDLE,
            progress_percent=0,
            proof_result=None,
            submission_result=None,
            last_error=None,
        )

        schedule = REMOTE_SCHEDULE if request.is_remote else LOCAL_SCHEDULE
        current = {"step": Step.READ_ARTIFACT}

        def on_step(step: Step) -> None:
            current["step"] = step
            progress = max(self._state.progress_percent, schedule.get(step, 0))
            self._update(epoch, current_step=step, progress_percent=progress)
            logger.debug("step=%s progress=%d", step.value, progress)

        try:
            on_step(Step.READ_ARTIFACT)
            if request.is_remote:
                result = await self.remote_prover.prove(request, on_step)
            else:
                result = await self.local_prover.prove(request, on_step)
        except ClaimError as e:
            self._fail_run(epoch, e.at_step(current["step"].value))
            raise
        except Exception as e:
            error_cls = RemoteProvingError if request.is_remote else EngineError
            err = error_cls(str(e) or type(e).__name__, step=current["step"].value)
            self._fail_run(epoch, err)
            raise err from e

        if not self._publish(epoch, self._state.evolve(
            phase=Phase.SUCCEEDED,
            progress_percent=COMPLETE_PERCENT,
            proof_result=result,
            last_error=None,
        )):
            logger.info("Discarding proof from a run that was reset")

    def _fail_run(self, epoch: int, error: ClaimError) -> None:
        logger.error("Proof generation error: %s", error)
        self._update(epoch, phase=Phase.FAILED, last_error=error, proof_result=None)

    # ------------------------------------------------------------------
    # submit
    # ------------------------------------------------------------------

    async def submit(self) -> None:
        """Submit the current proof through the relay.

        A given ProofResult should back at most one successful submission;
        callers are expected not to submit again after success. After a
        failure the proof is kept and submit() may simply be retried.
        """
        if self._submit_owner is not None:
            raise PipelineBusyError("A submission is already in progress")
        if self._run_owner is not None:
            raise PipelineBusyError("Cannot submit while a proof run is in progress")
        epoch = self._epoch
        proof_result = self._state.proof_result
        if proof_result is None:
            err = NoProofError("No proof to submit. Please generate a proof first.")
            self._update(epoch, phase=Phase.FAILED, last_error=err)
            raise err

        owner = object()
        self._submit_owner = owner
        try:
            await self._submit(proof_result, epoch)
        finally:
            if self._submit_owner is owner:
                self._submit_owner = None

    async def _submit(self, proof_result: ProofResult, epoch: int) -> None:
        step = Step.SUBMIT_ONCHAIN.value
        self._update(
            epoch,
            phase=Phase.RUNNING,
            current_step=Step.SUBMIT_ONCHAIN,
            submitting=True,
            last_error=None,
        )
        logger.info("Starting onchain submission")

        try:
            if self.relay is None:
                raise SubmissionFailedError("Submission failed: no relay configured", step=step)
            if not self.contract_address:
                raise SubmissionFailedError(
                    "Submission failed: no entrypoint contract configured", step=step
                )
            try:
                proof_data, public_outputs = extract_submission_inputs(proof_result.proof)
            except ValueError as e:
                raise SubmissionFailedError(f"Submission failed: {e}", cause=e, step=step) from e

            try:
                raw = await asyncio.wait_for(
                    self.relay.submit_proof(proof_data, public_outputs, self.contract_address),
                    timeout=self.submission_timeout,
                )
            except (asyncio.TimeoutError, TimeoutError) as e:
                raise SubmissionTimeoutError(
                    f"Timed out after {self.submission_timeout:g}s waiting for the "
                    "transaction receipt; the outcome is unknown",
                    timeout=self.submission_timeout,
                    step=step,
                ) from e
            except ClaimError:
                raise
            except Exception as e:
                raise SubmissionFailedError(f"Submission failed: {e}", cause=e, step=step) from e

            try:
                submission = _to_submission_result(raw)
            except (RelayError, TypeError) as e:
                raise SubmissionFailedError(f"Submission failed: {e}", cause=e, step=step) from e
        except ClaimError as e:
            logger.error("Submission error: %s", e)
            self._update(
                epoch,
                phase=Phase.FAILED,
                current_step=Step.SUBMIT_FAILED,
                submitting=False,
                last_error=e,
            )
            raise

        if self._update(
            epoch,
            phase=Phase.SUCCEEDED,
            current_step=Step.SUBMIT_COMPLETE,
            submitting=False,
            submission_result=submission,
        ):
            logger.info("Submission successful: tx %s", submission.transaction_hash)
        else:
            logger.info("Discarding submission result after reset")

    # ------------------------------------------------------------------
    # reset
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Clear everything back to idle. Safe at any time, including mid-flight.

        In-flight work is not stopped; its eventual result is discarded.
        """
        self._epoch += 1
        self._run_owner = None
        self._submit_owner = None
        self._publish(self._epoch, INITIAL_STATE)


def _to_submission_result(raw: RelayReceipt | Mapping[str, Any]) -> SubmissionResult:
    receipt = raw if isinstance(raw, RelayReceipt) else RelayReceipt.from_mapping(raw)
    return SubmissionResult(
        relay_operation_id=receipt.user_op_hash,
        transaction_hash=receipt.transaction_hash,
        account_address=receipt.account_address,
    )
