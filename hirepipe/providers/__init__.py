"""Identity provider adapters."""

from hirepipe.providers.base import AuthStateEmitter, IdentityProvider
from hirepipe.providers.hosted_identity import HostedIdentityProvider
from hirepipe.providers.local_identity import LocalIdentityProvider

__all__ = [
    "AuthStateEmitter",
    "IdentityProvider",
    "HostedIdentityProvider",
    "LocalIdentityProvider",
]
