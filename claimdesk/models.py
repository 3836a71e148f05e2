"""Pydantic models shared by the REST layer and the client."""

from __future__ import annotations

import re
from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from claimdesk.fields import DEFAULT_CLAIM_STATUS

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


class ClaimRecord(BaseModel):
    """Internal claim shape used by the client and the state manager.

    Canonical fields mirror the `claims` columns. The legacy views
    (`visit_id`, `patient_name`, ...) are read-only properties derived
    from them and are never serialized back to the API.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    patient_id: int | None = None
    patient_emr_no: str | None = None
    first_name: str = ""
    last_name: str = ""
    date_of_birth: str | None = None
    cpt_id: int | None = None
    cpt_code: str | None = None
    icd_code: str | None = None
    provider_name: str | None = None
    units: int | None = None
    service_start: str | None = None
    service_end: str | None = None
    claim_status: str = DEFAULT_CLAIM_STATUS
    claim_status_type: str | None = None

    oa_claim_id: str | None = None
    oa_visit_id: str | None = None
    charge_dt: str | None = None
    charge_amt: float | None = None
    allowed_amt: float | None = None
    allowed_add_amt: float | None = None
    allowed_exp_amt: float | None = None
    total_amt: float | None = None
    charges_adj_amt: float | None = None
    write_off_amt: float | None = None
    bal_amt: float | None = None
    reimb_pct: float | None = None

    prim_ins: str | None = None
    prim_amt: float | None = None
    prim_post_dt: str | None = None
    prim_chk_det: str | None = None
    prim_recv_dt: str | None = None
    prim_chk_amt: float | None = None
    prim_cmt: str | None = None

    sec_ins: str | None = None
    sec_amt: float | None = None
    sec_post_dt: str | None = None
    sec_chk_det: str | None = None
    sec_recv_dt: str | None = None
    sec_chk_amt: float | None = None
    sec_cmt: str | None = None
    sec_denial_code: str | None = None

    pat_amt: float | None = None
    pat_recv_dt: str | None = None
    notes: str | None = None

    @field_validator("claim_status", mode="before")
    @classmethod
    def default_status(cls, value: Any) -> Any:
        return value or DEFAULT_CLAIM_STATUS

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def blank_names(cls, value: Any) -> Any:
        return value or ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "ClaimRecord":
        """Deserialize an API row, tolerating the legacy `dos` alias."""
        payload = dict(data)
        if not payload.get("service_end") and payload.get("dos"):
            payload["service_end"] = payload["dos"]
        return cls.model_validate(payload)

    def merged(self, changes: dict[str, Any]) -> "ClaimRecord":
        """Return a copy with `changes` applied to known fields."""
        known = {k: v for k, v in changes.items() if k in type(self).model_fields and k != "id"}
        return self.model_copy(update=known)

    # Legacy views, derived and never authoritative

    @property
    def visit_id(self) -> str:
        return self.oa_visit_id or f"V{self.id}"

    @property
    def patient_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def dos(self) -> str:
        return self.service_end or ""

    @property
    def check_number(self) -> str:
        return self.prim_chk_det or self.sec_chk_det or ""

    @property
    def amount(self) -> float:
        return self.charge_amt or 0.0

    @property
    def status(self) -> str:
        return self.claim_status


class SearchFilters(BaseModel):
    """Ephemeral claim search parameters."""

    patient_id: str | None = None
    cpt_id: str | None = None
    dos: str | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.patient_id:
            params["patient_id"] = self.patient_id.strip()
        if self.cpt_id:
            params["cpt_id"] = self.cpt_id.strip()
        if self.dos:
            params["service_end"] = self.dos.strip()
        return params


class HistoryFilters(BaseModel):
    """Filters for the global change-history view."""

    user_id: int | None = None
    cpt_id: int | None = None
    start_date: str | None = None
    end_date: str | None = None
    page: int | None = None
    limit: int | None = None

    def to_params(self) -> dict[str, Any]:
        return {k: v for k, v in self.model_dump().items() if v}


class ChangeLogEntry(BaseModel):
    """One immutable field-level change on a claim."""

    id: int
    claim_id: int
    user_id: int | None = None
    username: str | None = None
    field_name: str
    old_value: str | None = None
    new_value: str | None = None
    changed_at: datetime | str
    patient_id: int | None = None
    first_name: str | None = None
    last_name: str | None = None
    cpt_code: str | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class UserOut(BaseModel):
    """User profile as returned by the API (never includes the hash)."""

    id: int
    name: str
    email: str
    role: Literal["Admin", "User"]
    created_at: datetime | str | None = None


class UserCreate(BaseModel):
    name: str = Field(default="", description="Display name")
    email: str = ""
    password: str = ""
    role: Literal["Admin", "User"] = "User"


class UserUpdate(BaseModel):
    name: str | None = None
    email: str | None = None
    password: str | None = None
    role: Literal["Admin", "User"] | None = None


class LoginRequest(BaseModel):
    email: str
    password: str


def iso_date(value: Any) -> str | None:
    """Render a date column for JSON responses."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)
