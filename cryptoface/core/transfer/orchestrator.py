"""
Transfer Pipeline Orchestrator

Sequences parse -> classify -> build -> submit behind the two user actions,
"parse" and "sign & submit", and keeps the state the caller displays.
"""

import asyncio
import dataclasses
import logging
import uuid
from typing import Dict, Optional, Set

from ...config import Settings, settings as default_settings
from .classifier import AssetClassifier
from .errors import (
    EmptyPromptError,
    InvalidActionError,
    PipelineError,
    SubmissionFailure,
    TransportFailure,
    UnresolvedPrompt,
)
from .models import (
    Failed,
    ParseOutcome,
    PipelineSnapshot,
    PipelineState,
    Resolved,
    Unresolved,
)
from .parser_client import ParserClient
from .submission import SubmissionDriver
from .tx_builder import TransactionBuilder
from .wallet import WalletCapability


class TransferPipeline:
    """
    One user session's prompt-to-transaction state machine.

    States:
        IDLE -> PARSING -> {PARSE_RESOLVED, PARSE_UNRESOLVED, PARSE_FAILED}
        PARSE_RESOLVED -> SIGNING -> {SUBMITTED, SIGN_FAILED}
        SIGN_FAILED -> SIGNING (retry without re-parsing)

    Every parse bumps a generation counter; a parse response that comes back
    after a newer parse started is discarded. Only one sign attempt may be in
    flight. ``SUBMITTED`` is sticky until the next parse so a built request is
    never submitted twice.
    """

    # States a new parse may start from
    PARSE_ALLOWED: Set[PipelineState] = {
        PipelineState.IDLE,
        PipelineState.PARSING,
        PipelineState.PARSE_RESOLVED,
        PipelineState.PARSE_UNRESOLVED,
        PipelineState.PARSE_FAILED,
        PipelineState.SUBMITTED,
        PipelineState.SIGN_FAILED,
    }

    # Why signing is refused, per state
    SIGN_REJECTIONS: Dict[PipelineState, str] = {
        PipelineState.IDLE: "No parsed transaction data available. Enter a prompt first.",
        PipelineState.PARSING: "Still parsing your prompt. Wait for it to finish before signing.",
        PipelineState.PARSE_FAILED: "No parsed transaction data available. Retry or enter a new prompt.",
        PipelineState.SIGNING: "A transaction is already awaiting wallet confirmation.",
        PipelineState.SUBMITTED: (
            "This transaction was already submitted. Enter a new prompt to start another transfer."
        ),
    }

    def __init__(
        self,
        parser: ParserClient,
        classifier: AssetClassifier,
        driver: SubmissionDriver,
        *,
        session_id: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.parser = parser
        self.classifier = classifier
        self.driver = driver
        self.session_id = session_id or uuid.uuid4().hex[:12]
        self.logger = logger or logging.getLogger(__name__)

        self._snapshot = PipelineSnapshot(state=PipelineState.IDLE)
        self._generation = 0
        self._sign_task: Optional[asyncio.Task] = None
        self._cancel_requested = False

    @classmethod
    def from_settings(
        cls,
        config: Optional[Settings] = None,
        wallet: Optional[WalletCapability] = None,
        **kwargs,
    ) -> "TransferPipeline":
        config = config or default_settings
        return cls(
            parser=ParserClient(
                base_url=config.parser_api_url,
                timeout_s=config.request_timeout_seconds,
                error_body_max_chars=config.error_body_max_chars,
            ),
            classifier=AssetClassifier.from_settings(config),
            driver=SubmissionDriver(wallet, chain_id=config.chain_id),
            **kwargs,
        )

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    @property
    def state(self) -> PipelineState:
        return self._snapshot.state

    @property
    def snapshot(self) -> PipelineSnapshot:
        return dataclasses.replace(self._snapshot)

    def _set(self, state: PipelineState, **changes) -> PipelineSnapshot:
        previous = self._snapshot.state
        self._snapshot = dataclasses.replace(self._snapshot, state=state, **changes)
        if previous != state:
            self.logger.info(
                "Pipeline %s: %s -> %s", self.session_id, previous.value, state.value
            )
        return self.snapshot

    def _reject(self, message: str) -> PipelineSnapshot:
        """Report a refused action without touching the stored state."""
        self.logger.info("Pipeline %s rejected action: %s", self.session_id, message)
        return dataclasses.replace(self._snapshot, error=InvalidActionError(message))

    # -------------------------------------------------------------------------
    # Wallet lifecycle
    # -------------------------------------------------------------------------

    def connect_wallet(self, wallet: WalletCapability) -> None:
        self.driver.wallet = wallet
        self.logger.info("Pipeline %s: wallet %s connected", self.session_id, wallet.name)

    def disconnect_wallet(self) -> None:
        self.driver.wallet = None
        self.logger.info("Pipeline %s: wallet disconnected", self.session_id)

    # -------------------------------------------------------------------------
    # Parse
    # -------------------------------------------------------------------------

    async def parse(self, prompt: str) -> PipelineSnapshot:
        """Send ``prompt`` to the parser; supersedes any parse still in flight."""
        if self.state not in self.PARSE_ALLOWED:
            return self._reject(
                "A transaction is awaiting wallet confirmation. Finish or cancel it first."
            )

        self._generation += 1
        generation = self._generation
        text = (prompt or "").strip()

        if not text:
            return self._set(
                PipelineState.PARSE_FAILED,
                prompt=prompt,
                outcome=None,
                transaction_handle=None,
                error=EmptyPromptError(),
            )

        self._set(
            PipelineState.PARSING,
            prompt=text,
            outcome=None,
            transaction_handle=None,
            error=None,
        )

        try:
            outcome = await self.parser.parse(text)
        except Exception as e:
            self.logger.exception("Parser client raised unexpectedly")
            outcome = Failed(reason=f"Error parsing transaction: {e}")

        if generation != self._generation:
            self.logger.info(
                "Pipeline %s: discarded stale parse response (generation %d, current %d)",
                self.session_id, generation, self._generation,
            )
            return self.snapshot

        return self._apply_outcome(outcome)

    async def retry_parse(self) -> PipelineSnapshot:
        """Re-send the last prompt after a transport failure."""
        if not self._snapshot.can_retry_parse:
            return self._reject("Nothing to retry. Only a failed parse can be retried.")
        return await self.parse(self._snapshot.prompt or "")

    def _apply_outcome(self, outcome: ParseOutcome) -> PipelineSnapshot:
        if isinstance(outcome, Resolved):
            return self._set(PipelineState.PARSE_RESOLVED, outcome=outcome, error=None)

        if isinstance(outcome, Unresolved):
            return self._set(
                PipelineState.PARSE_UNRESOLVED,
                outcome=outcome,
                error=UnresolvedPrompt(self._clarification_message(outcome)),
            )

        if outcome.retryable:
            error: PipelineError = TransportFailure(outcome.reason, status_code=outcome.status_code)
        else:
            error = EmptyPromptError(outcome.reason)
        return self._set(PipelineState.PARSE_FAILED, outcome=outcome, error=error)

    @staticmethod
    def _clarification_message(outcome: Unresolved) -> str:
        detail = " ".join(m.strip() for m in outcome.messages if m.strip())
        if detail:
            return f"{detail} Please clarify your prompt and parse it again."
        return "Could not build a transaction from that prompt. Please clarify it and parse again."

    # -------------------------------------------------------------------------
    # Sign & submit
    # -------------------------------------------------------------------------

    async def sign(self) -> PipelineSnapshot:
        """Build the parsed transfer and submit it through the wallet."""
        state = self.state
        if state == PipelineState.PARSE_UNRESOLVED:
            return dataclasses.replace(
                self._snapshot,
                error=UnresolvedPrompt(
                    "The parser needs more information before a transaction can be built. "
                    "Please clarify your prompt and parse it again."
                ),
            )
        if state in self.SIGN_REJECTIONS:
            return self._reject(self.SIGN_REJECTIONS[state])

        outcome = self._snapshot.outcome
        if not isinstance(outcome, Resolved):
            return self._reject(self.SIGN_REJECTIONS[PipelineState.IDLE])

        try:
            self.driver.ensure_provider()
            strategy = self.classifier.classify(outcome.currency)
            request = TransactionBuilder.build(strategy, outcome.recipient, outcome.amount)
        except PipelineError as e:
            return self._set(PipelineState.SIGN_FAILED, error=e)
        except Exception as e:
            self.logger.exception("Building the transaction raised unexpectedly")
            return self._set(
                PipelineState.SIGN_FAILED,
                error=PipelineError(f"Could not build the transaction: {e}"),
            )

        self._set(PipelineState.SIGNING, error=None)
        self._cancel_requested = False
        task = asyncio.ensure_future(self.driver.submit(request))
        self._sign_task = task

        try:
            result = await task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                self._set(
                    PipelineState.SIGN_FAILED,
                    error=SubmissionFailure("Transaction signing was interrupted."),
                )
                raise
            return self._set(
                PipelineState.SIGN_FAILED,
                error=SubmissionFailure("Transaction signing was cancelled."),
            )
        except PipelineError as e:
            return self._set(PipelineState.SIGN_FAILED, error=e)
        except Exception as e:
            self.logger.exception("Wallet submission raised unexpectedly")
            return self._set(
                PipelineState.SIGN_FAILED,
                error=SubmissionFailure(str(e) or "Failed to send transaction."),
            )
        finally:
            self._sign_task = None

        return self._set(
            PipelineState.SUBMITTED,
            outcome=None,
            transaction_handle=result.transaction_handle,
            error=None,
        )

    def cancel_sign(self) -> bool:
        """Abandon the pending wallet prompt. Returns False if nothing is pending."""
        task = self._sign_task
        if task is None or task.done():
            return False
        self._cancel_requested = True
        task.cancel()
        return True
