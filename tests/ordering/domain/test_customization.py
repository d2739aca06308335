"""Tests for line-item customization variants and their stored form."""

import pytest
from ordering.order.customization import (
    DirectPrintCustomization,
    EmbroideryCustomization,
    SublimationCustomization,
    dump_customization,
    parse_customization,
)
from ordering.order.order import OrderItem
from protean.exceptions import ValidationError as ProteanValidationError
from pydantic import ValidationError


class TestParseCustomization:
    def test_dtg_payload_parses_to_direct_print(self):
        customization = parse_customization(
            {"technique": "dtg", "placement": "back", "design_url": "https://cdn/x.png"}
        )
        assert isinstance(customization, DirectPrintCustomization)
        assert customization.placement == "back"

    def test_embroidery_defaults_to_chest_left(self):
        customization = parse_customization({"technique": "embroidery", "design_url": "https://cdn/x.png"})
        assert isinstance(customization, EmbroideryCustomization)
        assert customization.placement == "chest_left"

    def test_embroidery_keeps_thread_colors(self):
        customization = parse_customization(
            {"technique": "embroidery", "thread_colors": ["#000000", "#FFFFFF"]}
        )
        assert customization.thread_colors == ("#000000", "#FFFFFF")

    def test_sublimation_accepts_all_over(self):
        customization = parse_customization({"technique": "sublimation", "placement": "all_over"})
        assert isinstance(customization, SublimationCustomization)

    def test_none_passes_through(self):
        assert parse_customization(None) is None

    def test_typed_value_passes_through(self):
        customization = DirectPrintCustomization(design_url="https://cdn/x.png")
        assert parse_customization(customization) is customization

    def test_unknown_technique_rejected(self):
        with pytest.raises(ValidationError):
            parse_customization({"technique": "screen_print"})

    def test_placement_must_belong_to_technique(self):
        with pytest.raises(ValidationError):
            parse_customization({"technique": "embroidery", "placement": "all_over"})

    def test_stray_fields_rejected(self):
        with pytest.raises(ValidationError):
            parse_customization({"technique": "dtg", "thread_colors": ["#000"]})


class TestPrintReadyAsset:
    def test_with_print_ready_url_returns_copy(self):
        original = DirectPrintCustomization(design_url="https://cdn/design.png")
        updated = original.with_print_ready_url("https://cdn/print.png")

        assert updated.print_ready_url == "https://cdn/print.png"
        assert updated.design_url == "https://cdn/design.png"
        assert original.print_ready_url is None
        assert updated.is_print_ready
        assert not original.is_print_ready

    def test_customization_is_immutable(self):
        customization = DirectPrintCustomization()
        with pytest.raises(ValidationError):
            customization.placement = "back"


class TestStoredForm:
    def test_dump_drops_empty_fields(self):
        customization = parse_customization({"technique": "dtg", "design_url": "https://cdn/x.png"})
        assert dump_customization(customization) == {
            "technique": "dtg",
            "placement": "front",
            "design_url": "https://cdn/x.png",
        }

    def test_item_reads_typed_customization(self):
        item = OrderItem(
            position=1,
            product_variant_id="var-1",
            product_name="Classic Tee",
            quantity=1,
            unit_price=2500,
            customization={"technique": "sublimation", "placement": "back"},
        )
        assert isinstance(item.print_customization(), SublimationCustomization)

    def test_item_without_customization(self):
        item = OrderItem(position=1, product_variant_id="var-1", product_name="Classic Tee", quantity=1, unit_price=0)
        assert item.print_customization() is None

    def test_item_refuses_customization_of_wrong_technique(self):
        with pytest.raises(ProteanValidationError) as exc:
            OrderItem(
                position=1,
                product_variant_id="var-1",
                product_name="Classic Tee",
                quantity=1,
                unit_price=2500,
                customization={"technique": "laser"},
            )
        assert "customization" in exc.value.messages
