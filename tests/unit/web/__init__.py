"""Unit tests for FleetRef web route modules.

Structure:
    tests/unit/web/
    ├── test_app.py                      # App wiring, middleware, health
    ├── test_dependencies.py             # Shared dependencies
    ├── test_routes_imports.py           # Import validate/commit/history
    ├── test_routes_aircraft_types.py    # Type mapping rules
    └── test_routes_master_data.py       # Confirm and export

Testing pattern:
    - Use FastAPI's TestClient for route testing
    - Patch get_session and the service functions each route calls
    - Test request/response validation and error status codes
"""
