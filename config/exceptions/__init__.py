"""
Invites - Canonical exception hierarchy.

Source of truth for all exceptions raised by the feed core.
"""


class InvitesError(Exception):
    """Base exception for the invites feed core."""


class SyncError(InvitesError):
    """Refetch or bulk load failure in the live synchronization layer."""


class MutationError(InvitesError):
    """Join/leave call rejected or failed at the event repository."""


class ConfigurationError(InvitesError):
    """Invalid or unreadable feed configuration."""
