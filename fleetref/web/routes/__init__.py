"""FleetRef Web Route Modules.

Each module exports a `router` object (APIRouter instance) which
fleetref.web.app includes. Shared dependencies live in
fleetref.web.dependencies and request/response bodies in fleetref.web.models.

Pattern:
    from fastapi import APIRouter
    router = APIRouter(tags=["feature"])

Usage:
    from fleetref.web.routes import imports
    app.include_router(imports.router)
"""

from fleetref.web.routes import aircraft_types, health, imports, master_data

__all__ = [
    "imports",  # Validate / commit / history
    "aircraft_types",  # Type mapping rule admin
    "master_data",  # Bulk confirm and CSV export
    "health",
]
