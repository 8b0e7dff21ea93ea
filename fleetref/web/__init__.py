"""FleetRef web API (FastAPI)."""
