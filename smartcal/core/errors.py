"""
Exception hierarchy for smartcal.

Only collaborator failures are raised as exceptions. Extraction ambiguity,
missing fields and ambiguous targets are reported to the user as response
text by the agents instead.
"""


class SmartCalError(Exception):
    """Base class for all smartcal errors."""


class CollaboratorUnavailableError(SmartCalError):
    """An external collaborator could not serve the current operation."""


class EventStoreUnavailableError(CollaboratorUnavailableError):
    """The local Event Store is unreachable or failed."""


class RemoteProviderUnavailableError(CollaboratorUnavailableError):
    """The remote calendar provider is unreachable or failed."""


class NotAuthenticatedError(CollaboratorUnavailableError):
    """
    The remote calendar provider has no valid session.

    Not retryable: the caller has to obtain new credentials first.
    """


class SyncInProgressError(SmartCalError):
    """A reconciliation pass is already running for this reconciler."""


class RemoteRequestError(SmartCalError):
    """The remote calendar provider rejected a single request (e.g. 400, 404)."""
