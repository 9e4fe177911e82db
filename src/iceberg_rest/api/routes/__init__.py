"""API route modules.

Route organization:
- auth: Session login/logout
- iceberg: Authenticated catalog proxy
- health: Liveness check
"""

from . import auth, health, iceberg

__all__ = [
    "auth",
    "health",
    "iceberg",
]
