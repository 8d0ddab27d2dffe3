"""Appointment booking endpoints (MedMe-connected pharmacies only)."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, HTTPException, Query
from starlette.responses import JSONResponse

from ... import analytics, db, store
from ...search.adapters import MedMeLinkSource, RegularPharmacySource
from ..helpers import iso
from ..models import AppointmentCreateRequest, AppointmentStatusRequest

logger = logging.getLogger(__name__)

router = APIRouter()

APPOINTMENT_STATUSES = ("pending", "confirmed", "completed", "cancelled")

_COLUMNS = (
    "id",
    "user_id",
    "pharmacy_id",
    "service_type",
    "appointment_date",
    "appointment_time",
    "status",
    "patient_name",
    "patient_phone",
    "patient_email",
    "notes",
    "created_at",
    "updated_at",
)


def _row_to_appointment(row: dict, pharmacy: dict | None = None) -> dict[str, Any]:
    """Convert a DB or fallback row to the API's appointment dict."""
    data = {col: row.get(col) for col in _COLUMNS}
    data["id"] = str(data["id"])
    data["pharmacy_id"] = str(data["pharmacy_id"])
    for col in ("appointment_date", "appointment_time", "created_at", "updated_at"):
        data[col] = iso(data[col])
    if pharmacy is not None:
        data["pharmacy"] = {
            "name": pharmacy.get("name"),
            "address": pharmacy.get("address"),
            "phone": pharmacy.get("phone"),
        }
    return data


def _validate_slot(date_str: str, time_str: str) -> None:
    try:
        datetime.strptime(date_str, "%Y-%m-%d")
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid appointment_date '{date_str}'. Use YYYY-MM-DD format.",
        )
    try:
        datetime.strptime(time_str, "%H:%M")
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid appointment_time '{time_str}'. Use HH:MM (24h) format.",
        )


def book_appointment(req: AppointmentCreateRequest) -> dict[str, Any]:
    """
    Create a pending appointment.

    Raises HTTPException: 400 for a malformed slot, 404 for an unknown
    pharmacy, 409 when the pharmacy is not MedMe-connected.
    """
    _validate_slot(req.appointment_date, req.appointment_time)

    pharmacy = RegularPharmacySource().get_by_id(req.pharmacy_id)
    if pharmacy is None:
        raise HTTPException(status_code=404, detail="Pharmacy not found")
    if not MedMeLinkSource().is_connected(req.pharmacy_id):
        raise HTTPException(
            status_code=409,
            detail="Online booking is only available at MedMe-connected pharmacies",
        )

    fields = req.model_dump()
    fields["status"] = "pending"

    if db.is_available():
        row = db.insert_row("appointments", fields, returning=True)
    else:
        now = datetime.now(timezone.utc).isoformat()
        row = {"id": str(uuid.uuid4()), **fields, "created_at": now, "updated_at": now}
        store.get_table("appointments").append(row)

    logger.info("Booked appointment %s at pharmacy %s", row["id"], req.pharmacy_id)
    analytics.track_booking_step(
        "book_confirmed", req.pharmacy_id, req.service_type, True, user_id=req.user_id
    )
    return _row_to_appointment(row, pharmacy)


def set_appointment_status(appointment_id: str, status: str) -> dict[str, Any]:
    """Update an appointment's status. Raises 400 for unknown status, 404 if missing."""
    if status not in APPOINTMENT_STATUSES:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid status '{status}'. Valid statuses: {list(APPOINTMENT_STATUSES)}",
        )

    if db.is_available():
        row = db.fetch_one(
            "UPDATE appointments SET status = %s, updated_at = now() "
            "WHERE id::text = %s RETURNING *",
            (status, appointment_id),
        )
        if row is None:
            raise HTTPException(status_code=404, detail="Appointment not found")
        return _row_to_appointment(row)

    for row in store.get_table("appointments"):
        if str(row.get("id")) == appointment_id:
            row["status"] = status
            row["updated_at"] = datetime.now(timezone.utc).isoformat()
            return _row_to_appointment(row)
    raise HTTPException(status_code=404, detail="Appointment not found")


@router.post("/api/appointments")
async def create_appointment(req: AppointmentCreateRequest):
    try:
        appointment = book_appointment(req)
    except HTTPException:
        raise
    except Exception as e:
        logger.exception("Appointment booking failed")
        raise HTTPException(status_code=500, detail=str(e))
    return JSONResponse(status_code=201, content={"data": appointment})


@router.get("/api/appointments")
async def list_appointments(
    user_id: str = Query(..., description="Owner of the appointments"),
) -> dict[str, Any]:
    """A user's appointments ordered by date then time."""
    if db.is_available():
        rows = db.fetch_all(
            """
            SELECT a.*, p.name AS pharmacy_name, p.address AS pharmacy_address,
                   p.phone AS pharmacy_phone
            FROM appointments a
            LEFT JOIN pharmacies p ON p.id = a.pharmacy_id
            WHERE a.user_id::text = %s
            ORDER BY a.appointment_date, a.appointment_time
            """,
            (user_id,),
        )
        data = [
            _row_to_appointment(
                r,
                {"name": r["pharmacy_name"], "address": r["pharmacy_address"], "phone": r["pharmacy_phone"]},
            )
            for r in rows
        ]
    else:
        directory = RegularPharmacySource()
        rows = [r for r in store.get_table("appointments") if r.get("user_id") == user_id]
        rows.sort(key=lambda r: (r["appointment_date"], r["appointment_time"]))
        data = [_row_to_appointment(r, directory.get_by_id(r["pharmacy_id"])) for r in rows]

    return {"meta": {"total": len(data)}, "data": data}


@router.patch("/api/appointments/{appointment_id}/status")
async def update_appointment_status(appointment_id: str, req: AppointmentStatusRequest) -> dict[str, Any]:
    return {"data": set_appointment_status(appointment_id, req.status)}


@router.post("/api/appointments/{appointment_id}/cancel")
async def cancel_appointment(appointment_id: str) -> dict[str, Any]:
    return {"data": set_appointment_status(appointment_id, "cancelled")}
