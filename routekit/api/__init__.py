"""HTTP status surface for a RouteKit instance."""
from routekit.api.main import create_app

__all__ = ["create_app"]
