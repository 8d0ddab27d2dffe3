"""Pydantic request models for the Pharmacy Finder API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class AppointmentCreateRequest(BaseModel):
    pharmacy_id: str = Field(
        ...,
        description="Directory pharmacy id; must be MedMe-connected",
    )
    user_id: str = Field(
        ...,
        description="ID of the user booking the appointment",
    )
    service_type: str = Field(
        ...,
        description="Service being booked (e.g. Flu shots)",
        max_length=255,
    )
    appointment_date: str = Field(
        ...,
        description="Date in YYYY-MM-DD format",
    )
    appointment_time: str = Field(
        ...,
        description="Time in HH:MM (24h) format",
    )
    patient_name: str = Field(
        ...,
        description="Patient full name",
        min_length=1,
        max_length=255,
    )
    patient_phone: str | None = Field(
        None,
        description="Patient phone number",
    )
    patient_email: str | None = Field(
        None,
        description="Patient email address",
    )
    notes: str | None = Field(
        None,
        description="Free-text notes for the pharmacist",
    )


class AppointmentStatusRequest(BaseModel):
    status: str = Field(
        ...,
        description="New status: pending, confirmed, completed, cancelled",
    )


class AnalyticsEventRequest(BaseModel):
    event_type: str = Field(
        ...,
        description="Event name (search, results_shown, profile_view, book_start...)",
        max_length=100,
    )
    event_data: dict | None = Field(
        None,
        description="Structured event payload",
    )
    pharmacy_id: str | None = Field(
        None,
        description="Pharmacy the event refers to, if any",
    )
    service_type: str | None = Field(
        None,
        description="Service context of the event",
    )
    is_medme_pharmacy: bool = Field(
        False,
        description="Whether the pharmacy is MedMe-connected",
    )
    user_id: str | None = Field(
        None,
        description="Signed-in user, if any",
    )


class PharmacyImpressionRequest(BaseModel):
    pharmacy_id: str = Field(
        ...,
        description="Pharmacy shown or interacted with",
    )
    impression_type: str = Field(
        ...,
        description="view, click_call, click_directions, click_website or click_book",
    )
    service_context: str | None = Field(
        None,
        description="Service filter active when the impression happened",
    )
    is_medme_pharmacy: bool = Field(
        False,
        description="Whether the pharmacy is MedMe-connected",
    )
    metadata: dict | None = Field(
        None,
        description="Extra interaction details",
    )
    user_id: str | None = Field(
        None,
        description="Signed-in user, if any",
    )
