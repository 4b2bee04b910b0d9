"""Tests for creating, editing and deleting inventory units."""

import datetime
from unittest.mock import patch

import pytest

from django.core.exceptions import ValidationError
from django.utils import timezone

from inventory.exceptions import ConflictError
from inventory.factories import InventoryUnitFactory
from inventory.models import InventoryUnit


@pytest.fixture
def property_data():
    return {
        "name": "Projector",
        "category": "Electronics",
        "location": "Room 5",
        "description": "Ceiling mounted",
        "image_url": "https://img.example.com/projector.png",
    }


@pytest.fixture
def broadcasts():
    with patch("inventory.notifications.broadcast", return_value=True) as m:
        yield m


def _events(mock):
    return [c.args[0] for c in mock.call_args_list]


# ============================================================
# CREATE
# ============================================================


@pytest.mark.django_db
class TestCreateProperty:
    def test_creates_quantity_units(self, property_data, admin_user):
        from inventory.services.units import create_property

        units = create_property(property_data, 3, performed_by=admin_user)

        assert len(units) == 3
        assert InventoryUnit.objects.count() == 3
        assert [u.property_code for u in units] == [
            "PROP-001-001",
            "PROP-001-002",
            "PROP-001-003",
        ]
        for unit in units:
            unit.refresh_from_db()
            assert unit.quantity == 1
            assert unit.status == "Available"
            assert unit.updated_by == "admin@example.com"
            assert unit.version == 1

    def test_single_unit(self, property_data):
        from inventory.services.units import create_property

        (unit,) = create_property(property_data)
        assert unit.property_code == "PROP-001"
        assert unit.tag_number == "PROP-001-TAG-001"
        assert unit.updated_by == "Unknown"

    def test_broadcasts_per_unit(self, property_data, broadcasts):
        from inventory.services.units import create_property

        create_property(property_data, 2)
        assert _events(broadcasts) == ["property_created"] * 2

    def test_joins_existing_image_family(self, property_data):
        from inventory.services.units import create_property

        create_property(property_data, 2)
        property_data["image_url"] = "  HTTPS://img.example.com/PROJECTOR.png"
        units = create_property(property_data, 2)
        assert [u.property_code for u in units] == [
            "PROP-001-003",
            "PROP-001-004",
        ]
        assert [u.tag_number for u in units] == [
            "PROP-001-TAG-003",
            "PROP-001-TAG-004",
        ]

    def test_new_family_gets_new_base(self, property_data):
        from inventory.services.units import create_property

        create_property(property_data, 2)
        property_data["image_url"] = "https://img.example.com/screen.png"
        (unit,) = create_property(property_data)
        assert unit.property_code == "PROP-002"

    def test_serial_number_prefix(self, property_data):
        from inventory.services.units import create_property

        property_data["serial_number"] = "EPS-2024-001"
        units = create_property(property_data, 2)
        assert [u.tag_number for u in units] == [
            "EPS-2024-001",
            "EPS-2024-002",
        ]

    def test_same_serial_for_unrelated_properties(self, property_data):
        from inventory.services.units import create_property

        property_data["serial_number"] = "LAPTOP"
        (first,) = create_property(property_data)
        property_data["image_url"] = "https://img.example.com/other.png"
        (second,) = create_property(property_data)

        assert first.tag_number == "LAPTOP-001"
        assert second.property_code == "PROP-002"
        assert second.tag_number == "LAPTOP-002"

    def test_batch_without_image_shares_breakdown(self, property_data):
        from inventory.services.grouping import breakdown_for
        from inventory.services.units import create_property

        del property_data["image_url"]
        units = create_property(property_data, 3)

        assert [u.property_code for u in units] == [
            "PROP-001-001",
            "PROP-001-002",
            "PROP-001-003",
        ]
        assert breakdown_for(units[0])["Total"] == 3

    @pytest.mark.parametrize("field", ["name", "category", "location"])
    def test_required_fields(self, property_data, field):
        from inventory.services.units import create_property

        property_data[field] = "   "
        with pytest.raises(ValidationError) as exc_info:
            create_property(property_data)
        assert field in exc_info.value.message_dict
        assert InventoryUnit.objects.count() == 0

    @pytest.mark.parametrize("quantity", [0, -2, "abc"])
    def test_invalid_quantity(self, property_data, quantity):
        from inventory.services.units import create_property

        with pytest.raises(ValidationError):
            create_property(property_data, quantity)

    def test_cannot_create_in_use(self, property_data):
        from inventory.services.units import create_property

        property_data["status"] = "InUse"
        with pytest.raises(ValidationError):
            create_property(property_data)

    def test_initial_status(self, property_data):
        from inventory.services.units import create_property

        property_data["status"] = "UnderMaintenance"
        (unit,) = create_property(property_data)
        assert unit.status == "UnderMaintenance"

    def test_naive_date_made_aware(self, property_data):
        from inventory.services.units import create_property

        property_data["date_received"] = datetime.date(2024, 3, 1)
        (unit,) = create_property(property_data)
        unit.refresh_from_db()
        assert timezone.is_aware(unit.date_received)
        assert unit.date_received.date() == datetime.date(2024, 3, 1)

    def test_write_race_surfaces_conflict(self, property_data):
        from inventory.services import codes
        from inventory.services.units import create_property

        InventoryUnitFactory(property_code="PROP-001-001")
        with patch.object(
            codes, "next_base_property_code", return_value="PROP-001"
        ), patch.object(codes, "_collides", return_value=False):
            with pytest.raises(ConflictError):
                create_property(property_data, 2)
        assert InventoryUnit.objects.count() == 1


# ============================================================
# UPDATE
# ============================================================


@pytest.mark.django_db
class TestUpdateUnit:
    def test_plain_edit(self, unit, admin_user, broadcasts):
        from inventory.services.units import update_unit

        updated, action, new_units = update_unit(
            unit.pk, {"location": "Store Room"}, performed_by=admin_user
        )

        assert action == "updated"
        assert new_units == []
        unit.refresh_from_db()
        assert unit.location == "Store Room"
        assert unit.version == 2
        assert unit.updated_by == "admin@example.com"
        assert _events(broadcasts) == ["property_updated"]
        assert broadcasts.call_args.args[1]["action"] == "updated"

    def test_edit_of_borrowed_unit_rejected(self, borrowed_unit):
        from inventory.services.units import update_unit

        with pytest.raises(ValidationError, match="currently borrowed"):
            update_unit(borrowed_unit.pk, {"location": "Elsewhere"})
        borrowed_unit.refresh_from_db()
        assert borrowed_unit.location == "Main Office"

    def test_return_through_edit(self, borrowed_unit):
        from inventory.services.units import update_unit

        unit, action, _ = update_unit(
            borrowed_unit.pk, {"status": "Available", "location": "Desk 4"}
        )
        assert action == "returned"
        unit.refresh_from_db()
        assert unit.status == "Available"
        assert unit.location == "Desk 4"
        assert unit.borrower_name == ""
        assert unit.borrowed_at is None
        assert unit.return_due_at is None

    def test_borrow_through_edit(self, unit):
        from inventory.services.units import update_unit

        unit, action, _ = update_unit(unit.pk, {"borrower_name": "Zed"})
        assert action == "borrowed"
        unit.refresh_from_db()
        assert unit.status == "InUse"
        assert unit.borrowed_at is not None

    def test_update_borrowing_details(self, borrowed_unit):
        from inventory.services.units import update_unit

        due = timezone.now() + datetime.timedelta(days=30)
        unit, action, _ = update_unit(
            borrowed_unit.pk, {"borrower_name": "Carol", "return_due_at": due}
        )
        assert action == "borrowing_updated"
        unit.refresh_from_db()
        assert unit.borrower_name == "Carol"

    def test_stale_version_conflicts(self, unit):
        from inventory.services.units import update_unit

        InventoryUnit.objects.filter(pk=unit.pk).update(version=5)
        with pytest.raises(ConflictError, match="changed by someone else"):
            update_unit(unit.pk, {"location": "Attic"}, expected_version=1)
        unit.refresh_from_db()
        assert unit.location == "Main Office"

    def test_duplicate_code_rejected(self, unit):
        from inventory.services.units import update_unit

        other = InventoryUnitFactory(property_code="PROP-077")
        with pytest.raises(ValidationError):
            update_unit(other.pk, {"property_code": unit.property_code})

    def test_unknown_field_rejected(self, unit):
        from inventory.services.units import update_unit

        with pytest.raises(ValidationError, match="version"):
            update_unit(unit.pk, {"version": 9})

    def test_quantity_increase_expands_family(self, family):
        from inventory.services.units import update_unit

        unit, _, new_units = update_unit(family[0].pk, {"quantity": 5})

        assert [u.property_code for u in new_units] == [
            "PROP-010-004",
            "PROP-010-005",
        ]
        assert [u.tag_number for u in new_units] == ["CH-004", "CH-005"]
        assert all(u.status == "Available" for u in new_units)
        assert all(u.name == "Office Chair" for u in new_units)
        assert InventoryUnit.objects.count() == 5

    def test_quantity_decrease_deletes_nothing(self, family):
        from inventory.services.units import update_unit

        _, _, new_units = update_unit(family[0].pk, {"quantity": 1})
        assert new_units == []
        assert InventoryUnit.objects.count() == 3

    def test_missing_unit(self, db):
        from inventory.services.units import update_unit

        with pytest.raises(InventoryUnit.DoesNotExist):
            update_unit(999, {"location": "x"})

    def test_quantity_increase_without_image(self, property_data):
        from inventory.services.units import create_property, update_unit

        del property_data["image_url"]
        units = create_property(property_data, 3)
        _, _, new_units = update_unit(units[0].pk, {"quantity": 5})

        assert [u.property_code for u in new_units] == [
            "PROP-001-004",
            "PROP-001-005",
        ]
        assert [u.tag_number for u in new_units] == [
            "PROP-001-TAG-004",
            "PROP-001-TAG-005",
        ]
        assert InventoryUnit.objects.count() == 5

    @pytest.mark.parametrize("quantity", ["abc", 0])
    def test_invalid_quantity_leaves_unit_untouched(self, unit, quantity):
        from inventory.services.units import update_unit

        with pytest.raises(ValidationError):
            update_unit(unit.pk, {"location": "Room 99", "quantity": quantity})

        unit.refresh_from_db()
        assert unit.location != "Room 99"
        assert unit.version == 1

    def test_failed_expansion_rolls_back_edit(self, family):
        from inventory.services.units import update_unit

        with patch(
            "inventory.services.units.allocate_batch",
            side_effect=ConflictError("taken"),
        ):
            with pytest.raises(ConflictError):
                update_unit(family[0].pk, {"location": "Hall", "quantity": 5})

        family[0].refresh_from_db()
        assert family[0].location == "Room 101"
        assert family[0].version == 1
        assert InventoryUnit.objects.count() == 3


# ============================================================
# LOOKUP / DELETE
# ============================================================


@pytest.mark.django_db
class TestLookups:
    def test_get_unit_missing(self):
        from inventory.services.units import get_unit

        with pytest.raises(InventoryUnit.DoesNotExist):
            get_unit(12345)

    def test_get_unit_by_code_case_insensitive(self, unit):
        from inventory.services.units import get_unit_by_code

        assert get_unit_by_code(" prop-001 ").pk == unit.pk

    def test_get_unit_by_code_missing(self):
        from inventory.services.units import get_unit_by_code

        with pytest.raises(InventoryUnit.DoesNotExist):
            get_unit_by_code("PROP-404")


@pytest.mark.django_db
class TestDelete:
    def test_delete_unit(self, unit, broadcasts):
        from inventory.services.units import delete_unit

        assert delete_unit(unit.pk) == "PROP-001"
        assert not InventoryUnit.objects.filter(pk=unit.pk).exists()
        broadcasts.assert_called_once_with(
            "property_deleted", {"property_code": "PROP-001"}
        )

    def test_delete_units(self, family, broadcasts):
        from inventory.services.units import delete_units

        count = delete_units([u.pk for u in family[:2]] + [999])
        assert count == 2
        assert InventoryUnit.objects.count() == 1
        assert _events(broadcasts) == ["property_deleted"] * 2


class TestActorName:
    def test_unknown(self):
        from inventory.services.units import actor_name

        assert actor_name(None) == "Unknown"

    def test_string_passthrough(self):
        from inventory.services.units import actor_name

        assert actor_name("scanner@example.com") == "scanner@example.com"
