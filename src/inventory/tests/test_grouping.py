"""Tests for read-time grouping of units into logical properties."""

import datetime

import pytest

from django.utils import timezone

from inventory.factories import InventoryUnitFactory
from inventory.models import InventoryUnit


def _unit(code, status="Available", image_url="", **kwargs):
    return InventoryUnit(
        property_code=code, status=status, image_url=image_url, **kwargs
    )


class TestResolveFamily:
    def test_image_url_match_is_trimmed_and_case_insensitive(self):
        from inventory.services.grouping import BY_IMAGE_URL, resolve_family

        units = [
            _unit("PROP-001-001", image_url="img.png"),
            _unit("PROP-001-002", image_url="  IMG.PNG "),
            _unit("PROP-001-003", image_url="other.png"),
        ]
        family = resolve_family("img.png", units, by=BY_IMAGE_URL)
        assert [u.property_code for u in family] == [
            "PROP-001-001",
            "PROP-001-002",
        ]

    def test_image_url_ignores_coinciding_code_prefix(self):
        from inventory.services.grouping import resolve_family

        units = [
            _unit("PROP-001-001", image_url="img.png"),
            _unit("PROP-001-002", image_url="img.png"),
            _unit("PROP-001-003", image_url="different.png"),
            _unit("PROP-001-004"),
        ]
        family = resolve_family(units[0], units)
        assert {u.property_code for u in family} == {
            "PROP-001-001",
            "PROP-001-002",
        }

    def test_code_prefix_family(self):
        from inventory.services.grouping import (
            BY_PROPERTY_CODE,
            resolve_family,
        )

        units = [
            _unit("PROP-001"),
            _unit("PROP-001-002"),
            _unit("PROP-0010"),
            _unit("PROP-002-001"),
        ]
        family = resolve_family("PROP-001", units, by=BY_PROPERTY_CODE)
        assert [u.property_code for u in family] == [
            "PROP-001",
            "PROP-001-002",
        ]

    def test_unit_without_image_groups_by_code(self):
        from inventory.services.grouping import resolve_family

        units = [_unit("PROP-004"), _unit("PROP-004-001", image_url="x.png")]
        family = resolve_family(units[0], units)
        assert [u.property_code for u in family] == [
            "PROP-004",
            "PROP-004-001",
        ]

    def test_suffixed_unit_finds_whole_family(self):
        from inventory.services.grouping import resolve_family

        units = [
            _unit("PROP-001-001"),
            _unit("PROP-001-002"),
            _unit("PROP-001-003"),
            _unit("PROP-0010"),
            _unit("PROP-002-001"),
        ]
        family = resolve_family(units[1], units)
        assert [u.property_code for u in family] == [
            "PROP-001-001",
            "PROP-001-002",
            "PROP-001-003",
        ]

    def test_breakdown_for_suffixed_unit_counts_family(self):
        from inventory.services.grouping import breakdown_for

        units = [
            _unit("PROP-003-001", quantity=1),
            _unit("PROP-003-002", status="InUse", quantity=1),
            _unit("PROP-003-003", quantity=1),
        ]
        breakdown = breakdown_for(units[0], units)
        assert breakdown["Total"] == 3
        assert breakdown["Available"] == 2
        assert breakdown["InUse"] == 1

    def test_blank_key_resolves_empty(self):
        from inventory.services.grouping import BY_IMAGE_URL, resolve_family

        assert resolve_family("  ", [_unit("A")], by=BY_IMAGE_URL) == []

    def test_plain_key_requires_strategy(self):
        from inventory.services.grouping import resolve_family

        with pytest.raises(ValueError):
            resolve_family("img.png", [])

    def test_reads_store_when_units_omitted(self, family):
        from inventory.services.grouping import BY_IMAGE_URL, resolve_family

        InventoryUnitFactory(image_url="https://img.example.com/desk.png")
        result = resolve_family(
            "HTTPS://IMG.EXAMPLE.COM/CHAIR.PNG", by=BY_IMAGE_URL
        )
        assert {u.pk for u in result} == {u.pk for u in family}


class TestQuantityBreakdown:
    def test_counts_per_status(self):
        from inventory.services.grouping import quantity_breakdown

        family = [
            _unit("A", "Available", quantity=1),
            _unit("B", "InUse", quantity=1),
            _unit("C", "InUse", quantity=1),
        ]
        assert quantity_breakdown(family) == {
            "Total": 3,
            "Available": 1,
            "InUse": 2,
            "UnderMaintenance": 0,
            "Damaged": 0,
        }

    def test_empty_family_is_all_zero(self):
        from inventory.services.grouping import quantity_breakdown

        assert set(quantity_breakdown([]).values()) == {0}

    def test_fallback_for_empty_family(self):
        from inventory.services.grouping import breakdown_for

        unit = _unit("PROP-050", "Damaged", image_url="gone.png", quantity=1)
        assert breakdown_for(unit, units=[]) == {
            "Total": 1,
            "Available": 0,
            "InUse": 0,
            "UnderMaintenance": 0,
            "Damaged": 1,
        }


class TestRepresentativeView:
    def test_empty_family(self):
        from inventory.services.grouping import representative_view

        assert representative_view([]) is None

    def test_family_representative(self, family):
        from inventory.services.grouping import representative_view

        later = timezone.now() + datetime.timedelta(hours=1)
        family[2].last_updated = later
        view = representative_view(family)

        assert view.id == family[0].pk
        assert view.property_code == "PROP-010"
        assert view.tag_number == "CH"
        assert view.name == "Office Chair"
        assert view.quantity == 3
        assert view.last_updated == later
        assert view.borrower_name == "Bob"
        assert view.breakdown["InUse"] == 1
        assert view.breakdown["Damaged"] == 1
        assert view.is_grouped

    def test_stored_quantity_untouched(self, family):
        from inventory.services.grouping import representative_view

        representative_view(family)
        assert all(u.quantity == 1 for u in family)
        assert set(
            InventoryUnit.objects.values_list("quantity", flat=True)
        ) == {1}

    def test_no_borrower_when_none_in_use(self):
        from inventory.services.grouping import representative_view

        now = timezone.now()
        family = [
            _unit("PROP-001-001", last_updated=now, quantity=1),
            _unit("PROP-001-002", last_updated=now, quantity=1),
        ]
        view = representative_view(family)
        assert view.borrower_name == ""
        assert view.borrowed_at is None
        assert view.return_due_at is None

    def test_single_unit_keeps_own_identifiers(self, unit):
        from inventory.services.grouping import representative_view

        view = representative_view([unit])
        assert view.property_code == "PROP-001"
        assert view.tag_number == "SN-001"
        assert not view.is_grouped


class TestGroupedListing:
    def test_groups_image_families_keeps_others_individual(
        self, family, unit, borrowed_unit
    ):
        from inventory.services.grouping import grouped_listing

        rows = grouped_listing()
        assert len(rows) == 3
        grouped = [r for r in rows if r.is_grouped]
        assert len(grouped) == 1
        assert grouped[0].quantity == 3

    def test_most_recently_updated_first(self, db):
        from inventory.services.grouping import grouped_listing

        now = timezone.now()
        old = InventoryUnitFactory(
            last_updated=now - datetime.timedelta(days=2)
        )
        new = InventoryUnitFactory(last_updated=now)
        rows = grouped_listing()
        assert [r.id for r in rows] == [new.pk, old.pk]

    def test_filters_apply_before_grouping(self, family):
        from inventory.services.grouping import grouped_listing

        rows = grouped_listing(status="Damaged")
        assert len(rows) == 1
        assert rows[0].quantity == 1
        assert rows[0].property_code == "PROP-010-003"

    def test_category_filter_case_insensitive(self, family, unit):
        from inventory.services.grouping import grouped_listing

        rows = grouped_listing(category="furniture")
        assert len(rows) == 1
        assert rows[0].name == "Office Chair"

    def test_search(self, family, unit):
        from inventory.services.grouping import grouped_listing

        rows = grouped_listing(search="projector")
        assert [r.property_code for r in rows] == ["PROP-001"]


class TestFamilyByStatus:
    def test_buckets(self, family):
        from inventory.services.grouping import family_by_status

        buckets = family_by_status(family)
        assert [u.property_code for u in buckets["Available"]] == [
            "PROP-010-001"
        ]
        assert buckets["UnderMaintenance"] == []


class TestCategories:
    def test_distinct_sorted(self, db):
        from inventory.services.grouping import categories

        InventoryUnitFactory(category="tools")
        InventoryUnitFactory(category="Electronics")
        InventoryUnitFactory(category="Tools")
        assert categories() == ["Electronics", "tools"]
