"""Factory Boy factories for inventory and account test data."""

import datetime

import factory
from factory.django import DjangoModelFactory

from django.contrib.auth.hashers import make_password
from django.utils import timezone


class UserFactory(DjangoModelFactory):
    """Factory for CustomUser model."""

    class Meta:
        model = "accounts.CustomUser"
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f"user{n}")
    email = factory.LazyAttribute(lambda o: f"{o.username}@example.com")
    display_name = factory.Faker("name")
    user_type = "admin"
    is_active = True

    @factory.post_generation
    def password(self, create, extracted, **kwargs):
        pwd = extracted or "testpass123!"
        self.set_password(pwd)
        if create:
            self.save(update_fields=["password"])


class InventoryUnitFactory(DjangoModelFactory):
    """Factory for InventoryUnit model.

    Produces a standalone, available unit. Pass ``image_url`` to put
    several units in the same family.
    """

    class Meta:
        model = "inventory.InventoryUnit"

    property_code = factory.Sequence(lambda n: f"UNIT-{n + 1:05d}")
    tag_number = None
    name = factory.Sequence(lambda n: f"Projector {n}")
    category = "Electronics"
    location = "Main Office"
    status = "Available"
    quantity = 1
    updated_by = "factory@example.com"


class BorrowedUnitFactory(InventoryUnitFactory):
    """An InUse unit with a borrower, due back in a week."""

    status = "InUse"
    borrower_name = factory.Faker("name")
    borrowed_at = factory.LazyFunction(timezone.now)
    return_due_at = factory.LazyFunction(
        lambda: timezone.now() + datetime.timedelta(days=7)
    )


class OtpVerificationFactory(DjangoModelFactory):
    class Meta:
        model = "accounts.OtpVerification"

    email = factory.Sequence(lambda n: f"signup{n}@example.com")
    code = "123456"
    full_name = factory.Faker("name")
    password_hash = factory.LazyFunction(lambda: make_password("s3cret-pass!"))


class AccountRequestFactory(DjangoModelFactory):
    class Meta:
        model = "accounts.AccountRequest"

    email = factory.Sequence(lambda n: f"applicant{n}@example.com")
    full_name = factory.Faker("name")
    position = "Field Officer"
    status = "pending"
