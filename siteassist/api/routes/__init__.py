"""Routes package"""

from siteassist.api.routes.routes import (
    api_router,
    register_all_routes,
)

from siteassist.api.routes.dependencies import (
    require_api_key,
    get_origin,
    get_registry,
    get_store,
    get_pipeline,
    get_fetcher,
)

__all__ = [
    "api_router",
    "register_all_routes",
    "require_api_key",
    "get_origin",
    "get_registry",
    "get_store",
    "get_pipeline",
    "get_fetcher",
]
