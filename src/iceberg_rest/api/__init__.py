"""HTTP API for iceberg-rest."""

from iceberg_rest.api.server import create_api_app

__all__ = ["create_api_app"]
