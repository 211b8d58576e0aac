"""Route-scoped credential storage."""
from routekit.security.credentials import CredentialStore, ROUTE_TOKEN_KEY

__all__ = ["CredentialStore", "ROUTE_TOKEN_KEY"]
