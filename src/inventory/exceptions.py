"""Exceptions raised by the inventory services."""


class ConflictError(Exception):
    """A unique code or tag, or a unit version, collided with the store.

    Retryable: re-reading current state and repeating the operation is
    expected to succeed under the low write concurrency of admin actions.
    """
