"""Error taxonomy for the ordering core.

Every error carries a stable ``code`` so that HTTP handlers and background
jobs can decide how to surface it without string matching on messages.
"""


class OrderingError(Exception):
    code = "ORDERING_ERROR"

    def __init__(self, message: str, **context) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        return self.message


class OrderNotFound(OrderingError):
    code = "NOT_FOUND"

    def __init__(self, order_id: str) -> None:
        super().__init__(f"Order not found: {order_id}", order_id=order_id)
        self.order_id = order_id


class ValidationFailure(OrderingError):
    code = "VALIDATION_FAILURE"


class SubmissionRejected(ValidationFailure):
    """The order is not eligible for submission to the fulfillment partner."""

    def __init__(self, order_id: str, reason: str) -> None:
        super().__init__(reason, order_id=order_id)
        self.order_id = order_id
        self.reason = reason


class InvalidActor(ValidationFailure):
    def __init__(self, changed_by: str) -> None:
        super().__init__(
            f"Invalid changed_by tag: {changed_by!r}",
            changed_by=changed_by,
        )


class StaleEvent(OrderingError):
    code = "STALE_EVENT"

    def __init__(self, order_id: str, sequence: int, last_sequence: int) -> None:
        super().__init__(
            f"Event sequence {sequence} is not newer than {last_sequence} for order {order_id}",
            order_id=order_id,
            sequence=sequence,
            last_sequence=last_sequence,
        )


class ProviderError(OrderingError):
    """A payment or fulfillment provider call failed.

    Retried by the caller under the bounded retry policy, never inside the core.
    """

    code = "PROVIDER_ERROR"

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{provider}: {message}", provider=provider, status_code=status_code)
        self.provider = provider
        self.status_code = status_code


class CompensationFailure(OrderingError):
    code = "COMPENSATION_FAILURE"
