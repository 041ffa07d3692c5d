"""Error types surfaced by the record store, identity and editor layers."""


class RecordError(Exception):
    """Base class for vehicle service record failures."""


class AuthError(RecordError):
    """Identity could not be established."""


class SubscriptionError(RecordError):
    """The live query over a record collection failed."""


class PersistenceError(RecordError):
    """A create, update or delete against the store failed."""
