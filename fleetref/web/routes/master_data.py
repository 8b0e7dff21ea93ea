"""Master data administration routes.

Routes:
- POST /api/master-data/{data_type}/confirm - Mark entities as confirmed
- GET  /api/master-data/{data_type}/export  - Download all entities as CSV
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from fleetref.db.connection import get_session
from fleetref.models import DataType
from fleetref.reconciliation.admin import (
    confirm_aircraft,
    confirm_customers,
    export_aircraft_csv,
    export_customers_csv,
)
from fleetref.web.dependencies import get_data_type, get_user_id
from fleetref.web.models import ConfirmRequest, ConfirmResponse

router = APIRouter(prefix="/api/master-data", tags=["master-data"])


@router.post("/{data_type}/confirm", response_model=ConfirmResponse)
async def confirm(
    body: ConfirmRequest,
    data_type: DataType = Depends(get_data_type),
    user_id: str = Depends(get_user_id),
):
    """Promote customers (by name) or aircraft (by registration) to confirmed."""
    async with get_session() as session:
        if data_type == DataType.CUSTOMER:
            count = await confirm_customers(session, body.keys, user_id)
        else:
            count = await confirm_aircraft(session, body.keys, user_id)

    return ConfirmResponse(count=count)


@router.get("/{data_type}/export")
async def export(data_type: DataType = Depends(get_data_type)):
    async with get_session() as session:
        if data_type == DataType.CUSTOMER:
            content = await export_customers_csv(session)
            filename = "customers.csv"
        else:
            content = await export_aircraft_csv(session)
            filename = "aircraft.csv"

    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
