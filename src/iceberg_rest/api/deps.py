"""Shared dependencies for API routes.

FastAPI convention: deps.py contains reusable request dependencies.
All route files should import dependencies from here rather than
defining their own helper functions.

Usage with Annotated:
    from iceberg_rest.api.deps import SessionStoreDep

    @router.post("/logout")
    async def logout(store: SessionStoreDep) -> LogoutResponse:
        ...
"""

from __future__ import annotations

__all__ = [
    # Dependency functions
    "get_catalog_proxy",
    "get_session_store",
    # Type aliases for Annotated pattern
    "CatalogProxyDep",
    "SessionStoreDep",
]

from typing import Annotated, Any, Callable

from fastapi import Depends, HTTPException, Request

from iceberg_rest.proxy import CatalogProxy
from iceberg_rest.sessions.store import SessionStore


def _create_state_getter(
    attr_name: str,
    type_hint: str,
    error_detail: str,
) -> Callable[[Request], Any]:
    """Create a dependency function that retrieves a value from app.state.

    Args:
        attr_name: Attribute name on app.state (e.g., "session_store").
        type_hint: Type name used in the generated docstring.
        error_detail: Error message for the 503 response.

    Returns:
        A dependency function compatible with FastAPI's Depends().
    """

    def getter(request: Request) -> Any:
        value = getattr(request.app.state, attr_name, None)
        if value is None:
            raise HTTPException(status_code=503, detail=error_detail)
        return value

    getter.__name__ = f"get_{attr_name}"
    getter.__doc__ = f"Get {type_hint} from app.state.\n\nRaises HTTPException 503 if not available."
    return getter


get_session_store: Callable[[Request], SessionStore] = _create_state_getter(
    "session_store",
    "SessionStore",
    "Session store not available. Server may still be starting.",
)

get_catalog_proxy: Callable[[Request], CatalogProxy] = _create_state_getter(
    "catalog_proxy",
    "CatalogProxy",
    "Catalog proxy not available. Server may still be starting.",
)


SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
CatalogProxyDep = Annotated[CatalogProxy, Depends(get_catalog_proxy)]
