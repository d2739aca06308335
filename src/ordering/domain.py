"""Ordering bounded context — print-on-demand order lifecycle.

Holds the Order aggregate with its status ledger, the provider event inbox,
and the commands that move an order from checkout through payment,
fulfillment and compensation. Payment and fulfillment adapters live in
their own packages and reach the aggregate only through these commands.
"""

from protean.domain import Domain

from ordering.utils.logging import configure_logging, get_logger

configure_logging()

ordering = Domain(name="ordering")

logger = get_logger(__name__)
