"""Owner identity plumbing for authenticated routes."""

from .identity import AuthIdentity, get_auth_identity

__all__ = [
    'AuthIdentity',
    'get_auth_identity',
]
