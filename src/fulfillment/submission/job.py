"""POD submission job — hands a paid order to the fulfillment partner.

Flow:
    load order → skip if already submitted → validate → build payload
    → create draft at partner → confirm draft → record partner reference
    → SUBMITTED_TO_POD

An order that fails validation is compensated immediately and never
retried. Partner errors propagate to run_with_retry(), which retries them
a bounded number of times before compensating.
"""

import time
from collections.abc import Callable
from dataclasses import dataclass

from protean.utils.globals import current_domain

from fulfillment.partner.port import FulfillmentPartner
from ordering.order.compensation import FailureCompensator
from ordering.order.exceptions import ProviderError, SubmissionRejected
from ordering.order.fulfillment import RecordPodSubmission
from ordering.order.order import Order
from ordering.order.submission import build_submission_payload, validate_for_submission
from ordering.utils.logging import get_logger

logger = get_logger(__name__)

JOB_ACTOR = "job:submit-pod-order"

MAX_SUBMISSION_ATTEMPTS = 3


@dataclass(frozen=True)
class RetryPolicy:
    """Exponential backoff between attempts, capped at ``max_delay`` seconds."""

    max_attempts: int = MAX_SUBMISSION_ATTEMPTS
    min_delay: float = 1.0
    factor: float = 2.0
    max_delay: float = 10.0

    def delay_for(self, attempt: int) -> float:
        """Seconds to wait after failed attempt number ``attempt`` (1-based)."""
        return min(self.min_delay * self.factor ** (attempt - 1), self.max_delay)


@dataclass(frozen=True)
class SubmissionResult:
    order_id: str
    status: str
    fulfillment_reference_id: str | None = None
    fulfillment_status: str | None = None

    @property
    def skipped(self) -> bool:
        return self.status == "skipped"


class SubmitPodOrderJob:
    def __init__(
        self,
        partner: FulfillmentPartner,
        compensator: FailureCompensator,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.partner = partner
        self.compensator = compensator
        self.policy = policy or RetryPolicy()
        self.sleep = sleep

    def run(self, order_id: str) -> SubmissionResult:
        """Submit one order to the partner.

        Raises:
            OrderNotFound: The order id does not resolve.
            SubmissionRejected: The order is not eligible; it has been compensated.
            ProviderError: The partner refused or could not be reached.
        """
        order = current_domain.repository_for(Order).get_order(order_id)

        if order.fulfillment_reference_id:
            logger.info(
                "Order already submitted to partner, skipping",
                order_id=order_id,
                fulfillment_reference_id=order.fulfillment_reference_id,
            )
            return SubmissionResult(
                order_id=order_id,
                status="skipped",
                fulfillment_reference_id=order.fulfillment_reference_id,
                fulfillment_status=order.fulfillment_status,
            )

        check = validate_for_submission(order)
        if not check.valid:
            logger.error("Order validation failed", order_id=order_id, reason=check.reason)
            self.compensator.handle_fulfillment_failure(order_id, check.reason)
            raise SubmissionRejected(order_id, check.reason)

        payload = build_submission_payload(order)
        logger.info(
            "Creating partner order",
            order_id=order_id,
            order_number=order.order_number,
            item_count=len(payload["items"]),
        )
        partner_order = self.partner.create_order(payload, confirm=False)

        try:
            partner_order = self.partner.confirm_order(partner_order.id)
        except ProviderError as exc:
            # The draft exists; it can be confirmed from the partner dashboard
            logger.warning(
                "Could not confirm partner order",
                order_id=order_id,
                partner_order_id=partner_order.id,
                error=str(exc),
            )

        current_domain.process(
            RecordPodSubmission(
                order_id=order_id,
                fulfillment_reference_id=str(partner_order.id),
                fulfillment_status=partner_order.status,
                changed_by=JOB_ACTOR,
                reason=f"Submitted to fulfillment partner as order {partner_order.id}",
            ),
            asynchronous=False,
        )

        logger.info(
            "Order submitted to partner",
            order_id=order_id,
            partner_order_id=partner_order.id,
            partner_status=partner_order.status,
        )
        return SubmissionResult(
            order_id=order_id,
            status="submitted",
            fulfillment_reference_id=str(partner_order.id),
            fulfillment_status=partner_order.status,
        )

    def run_with_retry(self, order_id: str) -> SubmissionResult:
        """Run the job, retrying partner errors under the retry policy.

        When every attempt fails the order is compensated and the last
        ProviderError is re-raised.
        """
        attempt = 1
        while True:
            try:
                return self.run(order_id)
            except ProviderError as exc:
                if attempt >= self.policy.max_attempts:
                    logger.error(
                        "Partner submission failed, giving up",
                        order_id=order_id,
                        attempts=attempt,
                        error=str(exc),
                    )
                    self.compensator.handle_fulfillment_failure(
                        order_id,
                        f"Failed to submit to fulfillment partner after multiple attempts: {exc}",
                    )
                    raise
                delay = self.policy.delay_for(attempt)
                logger.warning(
                    "Partner submission failed, retrying",
                    order_id=order_id,
                    attempt=attempt,
                    retry_in=delay,
                    error=str(exc),
                )
                self.sleep(delay)
                attempt += 1
