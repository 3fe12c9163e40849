"""Azure credential construction and ARM bearer-token caching."""

from search_mgmt.auth.credentials import CredentialError, CredentialProvider, build_credential

__all__ = [
    "CredentialError",
    "CredentialProvider",
    "build_credential",
]
