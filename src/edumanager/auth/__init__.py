"""
Caller identity: the capability token passed into every repository call and
the identity provider that issues it.
"""

from .context import CallerContext
from .identity import IdentityProvider, StoreIdentityProvider, hash_password, verify_password

__all__ = [
    "CallerContext",
    "IdentityProvider",
    "StoreIdentityProvider",
    "hash_password",
    "verify_password",
]
