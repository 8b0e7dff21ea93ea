"""Shared dependencies for FleetRef web routes.

Usage:
    from fastapi import Depends
    from fleetref.web.dependencies import get_user_id

    @router.post("/endpoint")
    async def handler(user_id: str = Depends(get_user_id)):
        ...
"""

from __future__ import annotations

from fastapi import Header, HTTPException

from fleetref.models import DataType


def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Caller identity from the X-User-Id header.

    Authentication happens upstream (reverse proxy / session layer); this
    service only records who made each change.

    Raises:
        HTTPException: 401 if the header is missing or blank
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    return x_user_id.strip()


def get_data_type(data_type: str) -> DataType:
    """Path parameter -> DataType. Accepts "customer(s)" and "aircraft".

    Raises:
        HTTPException: 404 for an unknown data type
    """
    value = data_type.lower()
    if value == "customers":
        value = DataType.CUSTOMER.value
    try:
        return DataType(value)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown data type: {data_type}") from None
