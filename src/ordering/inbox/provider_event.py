"""Provider event inbox — ids of webhook events already handled.

Payment and fulfillment providers redeliver events. Each event is claimed
here before it is acted on; a second claim of the same id is refused, even
from another process, because the inbox key is the table's primary key.
A handler that fails releases its claim so the redelivery can try again.
"""

from protean import handle
from protean.fields import DateTime, Identifier, String
from protean.utils.globals import current_domain

from ordering.domain import ordering
from ordering.order.order import utcnow


def event_key(source: str, event_id: str) -> str:
    return f"{source}:{event_id}"


@ordering.aggregate
class ProviderEvent:
    key = Identifier(identifier=True, required=True)  # "<source>:<event id>"
    source = String(required=True, max_length=50)
    event_id = String(required=True, max_length=255, sanitize=False)
    received_at = DateTime(required=True)


@ordering.command(part_of="ProviderEvent")
class ClaimProviderEvent:
    source = String(required=True, max_length=50)
    event_id = String(required=True, max_length=255, sanitize=False)


@ordering.command(part_of="ProviderEvent")
class ReleaseProviderEvent:
    source = String(required=True, max_length=50)
    event_id = String(required=True, max_length=255, sanitize=False)


@ordering.command_handler(part_of=ProviderEvent)
class ProviderEventHandler:
    @handle(ClaimProviderEvent)
    def claim(self, command):
        repo = current_domain.repository_for(ProviderEvent)
        key = event_key(command.source, command.event_id)
        if repo.get_or_none(key) is not None:
            return False

        repo.add(
            ProviderEvent(
                key=key,
                source=command.source,
                event_id=command.event_id,
                received_at=utcnow(),
            )
        )
        return True

    @handle(ReleaseProviderEvent)
    def release(self, command):
        repo = current_domain.repository_for(ProviderEvent)
        event = repo.get_or_none(event_key(command.source, command.event_id))
        if event is not None:
            repo._dao.delete(event)


def claim_event(source: str, event_id: str) -> bool:
    """Record a provider event id. Returns False if it was already claimed."""
    return current_domain.process(ClaimProviderEvent(source=source, event_id=event_id), asynchronous=False)


def release_event(source: str, event_id: str) -> None:
    """Forget an event id so a redelivery is processed again."""
    current_domain.process(ReleaseProviderEvent(source=source, event_id=event_id), asynchronous=False)
