"""clipcast FastAPI application."""

from clipcast.api.server import APIServer, create_app, create_contract_app

__all__ = ["APIServer", "create_app", "create_contract_app"]
