"""Storage-level exceptions.

These are separate from the OAuth protocol errors: the engines
translate the domain results (``GrantNotFound``, ``GrantExpired``) into
protocol errors, while ``StorageUnavailable`` is surfaced as an internal fault.
"""


class StorageError(Exception):
    """Base class for all store failures."""


class DuplicateClient(StorageError):
    """A client with the same client_id is already registered."""

    def __init__(self, client_id: str):
        super().__init__(f"Client {client_id} is already registered")
        self.client_id = client_id


class GrantNotFound(StorageError):
    """The authorization code does not exist or was already redeemed."""


class GrantExpired(StorageError):
    """The authorization code outlived its lifetime (it has been removed)."""


class StorageUnavailable(StorageError):
    """The backing store could not be reached."""
