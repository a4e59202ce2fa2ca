"""Mini README: HTTP interface for FeeLedger.

Exports the FastAPI application factory. Routers live in ``routes`` and
share the dependencies defined in ``dependencies``.
"""

from .web_app import create_application

__all__ = ["create_application"]
