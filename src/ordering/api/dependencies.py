"""Request-scoped wiring of the ordering services.

Provider clients are built once by the application factory and kept on
``app.state``; every service below receives them as constructor arguments.
Orders are reached through the Protean domain context the application
middleware pushes for each request.
"""

from fastapi import Depends, Request

from fulfillment.partner.port import FulfillmentPartner
from fulfillment.submission.job import SubmitPodOrderJob
from fulfillment.submission.partner_events import FulfillmentEventProcessor
from ordering.config import Settings
from ordering.order.compensation import FailureCompensator
from payments.gateway.port import PaymentGateway
from payments.payment.reconciliation import PaymentReconciler
from payments.payment.webhook import PaymentWebhookProcessor


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_gateway(request: Request) -> PaymentGateway:
    return request.app.state.gateway


def get_partner(request: Request) -> FulfillmentPartner:
    return request.app.state.partner


def get_compensator(gateway: PaymentGateway = Depends(get_gateway)) -> FailureCompensator:
    return FailureCompensator(gateway)


def get_reconciler(gateway: PaymentGateway = Depends(get_gateway)) -> PaymentReconciler:
    return PaymentReconciler(gateway)


def get_submission_job(
    request: Request,
    partner: FulfillmentPartner = Depends(get_partner),
    compensator: FailureCompensator = Depends(get_compensator),
) -> SubmitPodOrderJob:
    kwargs = {"policy": request.app.state.retry_policy}
    if request.app.state.sleep is not None:
        kwargs["sleep"] = request.app.state.sleep
    return SubmitPodOrderJob(partner, compensator, **kwargs)


def get_payment_webhooks(
    reconciler: PaymentReconciler = Depends(get_reconciler),
    submission_job: SubmitPodOrderJob = Depends(get_submission_job),
) -> PaymentWebhookProcessor:
    return PaymentWebhookProcessor(reconciler, enqueue_submission=submission_job.run_with_retry)


def get_fulfillment_events(compensator: FailureCompensator = Depends(get_compensator)) -> FulfillmentEventProcessor:
    return FulfillmentEventProcessor(compensator)
