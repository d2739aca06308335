"""Line-item customization — one tagged variant per print technique.

Each technique carries only the fields it needs. The OrderItem entity keeps
the payload as plain JSON and checks it against these models whenever the
item is built, so anything reading it back through
``OrderItem.print_customization()`` gets a typed object rather than a dict.
"""

from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _CustomizationBase(BaseModel):
    model_config = ConfigDict(frozen=True, extra="forbid")

    # Asset references, in the order they are preferred for printing
    print_ready_url: str | None = None
    design_url: str | None = None
    original_design_url: str | None = None

    design_id: str | None = None
    mockup_url: str | None = None
    style_id: int | None = None
    style_name: str | None = None

    @property
    def is_print_ready(self) -> bool:
        return bool(self.print_ready_url)

    def with_print_ready_url(self, url: str) -> "_CustomizationBase":
        """Return a copy with the prepared print asset attached."""
        return self.model_copy(update={"print_ready_url": url})


class DirectPrintCustomization(_CustomizationBase):
    """Direct-to-garment printing."""

    technique: Literal["dtg"] = "dtg"
    placement: Literal["front", "back", "left", "right", "sleeve_left", "sleeve_right"] = "front"


class EmbroideryCustomization(_CustomizationBase):
    technique: Literal["embroidery"] = "embroidery"
    placement: Literal["chest_left", "chest_center", "large_front", "sleeve_left", "sleeve_right"] = "chest_left"
    thread_colors: tuple[str, ...] = ()


class SublimationCustomization(_CustomizationBase):
    technique: Literal["sublimation"] = "sublimation"
    placement: Literal["front", "back", "all_over"] = "front"


Customization = Annotated[
    Union[DirectPrintCustomization, EmbroideryCustomization, SublimationCustomization],
    Field(discriminator="technique"),
]

_adapter = TypeAdapter(Customization)


def parse_customization(payload) -> Customization | None:
    """Validate a raw payload (or pass through an already typed one).

    Raises pydantic.ValidationError for unknown techniques or stray fields.
    """
    if payload is None or isinstance(payload, _CustomizationBase):
        return payload
    return _adapter.validate_python(payload)


def dump_customization(customization) -> dict:
    """Plain JSON form of a customization, as stored on the line item."""
    return customization.model_dump(mode="json", exclude_none=True)
