"""
Mutation orchestrator — apply, record, detect, merge.

One request moves through:

    REQUESTED → VALIDATED → APPLIED → RECORDED → DETECTING → COMPLETED

    REJECTED_AT_VALIDATION  bad input, unknown product, not enough stock,
                            ledger busy. Nothing was written.
    FAILED_AFTER_APPLY      quantity changed but the transaction was not
                            recorded. Raised as PersistenceInconsistencyError,
                            never retried.
    FAILED_AFTER_RECORD     mutation committed, detected anomalies could not
                            be merged. Reported as a partial failure.

A detection pass that fails does not undo anything: the stock change is
what happened in the store. The outcome lists the failed pass instead.

Usage:
    orchestrator = MutationOrchestrator()
    outcome = orchestrator.submit(
        MutationRequest(product_id=7, type='sale', quantity=3),
        actor=request.user,
    )
    outcome.transaction.new_quantity
    outcome.partial_failures
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from django.db import DatabaseError

from stockwatch.conf import stockwatch_settings
from stockwatch.exceptions import (
    DetectionUnavailableError,
    InsufficientStockError,
    LedgerBusyError,
    NotFoundError,
    PersistenceInconsistencyError,
    ValidationError,
)
from stockwatch.models.enums import MutationState, TransactionType
from stockwatch.models.product import Product
from stockwatch.models.transaction import StockTransaction
from stockwatch.protocols.detection import DetectionRunResult
from stockwatch.protocols.notification import ERROR, SUCCESS, WARNING, NotificationSink
from stockwatch.services.detection import DetectionTrigger
from stockwatch.services.ledger import LedgerResult, StockLedger, coerce_type
from stockwatch.services.recorder import TransactionRecorder
from stockwatch.services.triage import AnomalyRegistry

logger = logging.getLogger('stockwatch')

REJECTIONS = (ValidationError, InsufficientStockError, NotFoundError, LedgerBusyError)


@dataclass(frozen=True)
class MutationRequest:
    """
    One stock change as submitted by a caller.

    quantity is an amount for sale/restock/purchase/expiry/damage and the
    counted absolute quantity for adjustment.
    """

    product_id: int
    type: str
    quantity: int
    reason: str = ''


@dataclass(frozen=True)
class PartialFailure:
    """A non-essential step that failed after the mutation committed."""

    step: str
    code: str
    reason: str


@dataclass(frozen=True)
class DetectionSummary:
    anomalies_detected: int = 0
    alerts_generated: int = 0
    anomalies_created: int = 0
    duplicates: int = 0
    runs: tuple[DetectionRunResult, ...] = ()


@dataclass
class MutationOutcome:
    state: MutationState
    transaction: StockTransaction
    detection_summary: DetectionSummary
    partial_failures: list[PartialFailure] = field(default_factory=list)
    states: list[MutationState] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.partial_failures)


class MutationOrchestrator:
    """
    Runs mutation requests through the pipeline.

    Args:
        detection: DetectionTrigger to use (default: configured backend)
        notify: Sink receiving exactly one terminal notification per request
        passes: Detection passes to run, in order (default:
            STOCKWATCH['DETECTION_PASSES']; empty = no detection)
    """

    def __init__(self, detection: DetectionTrigger | None = None,
                 notify: NotificationSink | None = None,
                 passes: list[str] | tuple[str, ...] | None = None):
        self.detection = detection or DetectionTrigger()
        self.notify = notify
        self.passes = tuple(stockwatch_settings.DETECTION_PASSES if passes is None else passes)

    def submit(self, request: MutationRequest, actor=None) -> MutationOutcome:
        """
        Run one request to a terminal state.

        Raises:
            ValidationError, NotFoundError, InsufficientStockError,
            LedgerBusyError: Rejected, nothing was written
            PersistenceInconsistencyError: Stock changed, transaction missing
        """
        states = [MutationState.REQUESTED]

        try:
            tx_type = self._validate(request)
            states.append(MutationState.VALIDATED)

            with StockLedger.lock(request.product_id):
                result = self._apply(request, tx_type)
                states.append(MutationState.APPLIED)
                tx = self._record(request, tx_type, result, actor, states)
        except REJECTIONS as exc:
            states.append(MutationState.REJECTED_AT_VALIDATION)
            exc.data.setdefault('state', MutationState.REJECTED_AT_VALIDATION.value)
            logger.info(
                "mutation.rejected",
                extra={"product_id": request.product_id, "type": str(request.type), "code": exc.code},
            )
            self._notify(ERROR, f"Stock change rejected: {exc.message}",
                         product_id=request.product_id, state=states[-1].value, code=exc.code)
            raise

        states.append(MutationState.RECORDED)

        summary, failures, merged = self._detect(states)

        if merged:
            states.append(MutationState.COMPLETED)
        else:
            states.append(MutationState.FAILED_AFTER_RECORD)

        outcome = MutationOutcome(
            state=states[-1],
            transaction=tx,
            detection_summary=summary,
            partial_failures=failures,
            states=states,
        )

        logger.info(
            "mutation.completed",
            extra={
                "product_id": request.product_id,
                "transaction_id": tx.pk,
                "state": outcome.state.value,
                "partial_failures": [f.step for f in failures],
            },
        )

        context = {
            "product_id": request.product_id,
            "transaction_id": tx.pk,
            "state": outcome.state.value,
            "anomalies_detected": summary.anomalies_detected,
        }
        if failures:
            self._notify(WARNING, "Stock updated; some checks did not complete",
                         failures=[f.step for f in failures], **context)
        else:
            self._notify(SUCCESS, "Stock updated", **context)

        return outcome

    # ══════════════════════════════════════════════════════════════
    # STEPS
    # ══════════════════════════════════════════════════════════════

    def _validate(self, request: MutationRequest) -> TransactionType:
        tx_type = coerce_type(request.type)
        quantity = request.quantity

        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValidationError('INVALID_QUANTITY', quantity=quantity)
        if tx_type == TransactionType.ADJUSTMENT:
            if quantity < 0:
                raise ValidationError('INVALID_QUANTITY', quantity=quantity)
        elif quantity <= 0:
            raise ValidationError('INVALID_QUANTITY', quantity=quantity)

        if len(request.reason or '') > 255:
            raise ValidationError('INVALID_FIELD', field='reason')

        if not Product.objects.filter(pk=request.product_id).exists():
            raise NotFoundError('PRODUCT_NOT_FOUND', product_id=request.product_id)

        return tx_type

    def _apply(self, request: MutationRequest, tx_type: TransactionType) -> LedgerResult:
        if tx_type == TransactionType.ADJUSTMENT:
            return StockLedger.set_quantity(request.product_id, request.quantity)
        return StockLedger.apply_delta(request.product_id, request.quantity, tx_type)

    def _record(self, request: MutationRequest, tx_type: TransactionType,
                result: LedgerResult, actor, states: list[MutationState]) -> StockTransaction:
        try:
            return TransactionRecorder.record(
                request.product_id,
                tx_type,
                result.previous_quantity,
                result.new_quantity,
                reason=request.reason,
                actor=actor,
            )
        except Exception as exc:
            states.append(MutationState.FAILED_AFTER_APPLY)
            error = PersistenceInconsistencyError(
                product_id=request.product_id,
                type=tx_type.value,
                previous_quantity=result.previous_quantity,
                new_quantity=result.new_quantity,
                state=MutationState.FAILED_AFTER_APPLY.value,
                error=str(exc),
            )
            logger.critical(
                "mutation.inconsistent",
                extra=error.data,
                exc_info=True,
            )
            self._notify(ERROR, error.message, **error.data)
            raise error from exc

    def _detect(self, states: list[MutationState]):
        states.append(MutationState.DETECTING)
        failures: list[PartialFailure] = []
        runs: list[DetectionRunResult] = []

        # Sequential: the theft pass must see this mutation's transaction
        for detection_pass in self.passes:
            try:
                runs.append(self.detection.run_detection(detection_pass))
            except DetectionUnavailableError as exc:
                failures.append(PartialFailure(detection_pass, exc.code, exc.message))

        created = duplicates = 0
        merged = True
        try:
            for run in runs:
                merge = AnomalyRegistry.merge(run)
                created += len(merge.created)
                duplicates += merge.duplicates
        except DatabaseError as exc:
            merged = False
            failures.append(PartialFailure('merge', 'MERGE_FAILED', str(exc)))
            logger.exception("mutation.merge_failed")

        summary = DetectionSummary(
            anomalies_detected=sum(r.anomalies_detected for r in runs),
            alerts_generated=sum(r.alerts_generated for r in runs),
            anomalies_created=created,
            duplicates=duplicates,
            runs=tuple(runs),
        )
        return summary, failures, merged

    def _notify(self, level: str, message: str, **context) -> None:
        if self.notify is None:
            return
        try:
            self.notify(level, message, **context)
        except Exception:
            logger.exception("notify.failed", extra={"level": level})
