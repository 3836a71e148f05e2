"""Field catalogues for the claim record.

The canonical fields are the typed columns of the `claims` table. Legacy
fields are derived views the UI used to keep for display and must never
be written back.
"""

from __future__ import annotations

# Money and percentage columns: number or null on the wire, never ''
NUMERIC_FIELDS = frozenset(
    {
        "charge_amt",
        "allowed_amt",
        "allowed_add_amt",
        "allowed_exp_amt",
        "total_amt",
        "charges_adj_amt",
        "write_off_amt",
        "bal_amt",
        "reimb_pct",
        "prim_amt",
        "prim_chk_amt",
        "sec_amt",
        "sec_chk_amt",
        "pat_amt",
    }
)

INTEGER_FIELDS = frozenset({"patient_id", "cpt_id", "units"})

# Editable date columns: YYYY-MM-DD or null on the wire
DATE_FIELDS = frozenset(
    {
        "charge_dt",
        "prim_post_dt",
        "prim_recv_dt",
        "sec_post_dt",
        "sec_recv_dt",
        "pat_recv_dt",
    }
)

IDENTITY_DATE_FIELDS = frozenset({"date_of_birth", "service_start", "service_end"})

ALL_DATE_FIELDS = DATE_FIELDS | IDENTITY_DATE_FIELDS

TEXT_FIELDS = frozenset(
    {
        "patient_emr_no",
        "first_name",
        "last_name",
        "cpt_code",
        "icd_code",
        "provider_name",
        "claim_status",
        "claim_status_type",
        "oa_claim_id",
        "oa_visit_id",
        "prim_ins",
        "prim_chk_det",
        "prim_cmt",
        "sec_ins",
        "sec_chk_det",
        "sec_cmt",
        "sec_denial_code",
        "notes",
    }
)

# Every column a partial update may target
CANONICAL_FIELDS = NUMERIC_FIELDS | INTEGER_FIELDS | ALL_DATE_FIELDS | TEXT_FIELDS

# NOT NULL columns that an update may not blank out
REQUIRED_FIELDS = ("patient_id", "first_name", "last_name", "cpt_id", "claim_status")

# Derived/compatibility names sent by older clients
LEGACY_FIELDS = frozenset(
    {
        "visitId",
        "patientId",
        "patientName",
        "dob",
        "dos",
        "checkNumber",
        "amount",
        "status",
        "createdAt",
        "updatedAt",
        "visit_id",
        "patient_name",
        "check_number",
    }
)

# Acting-user metadata carried alongside the partial claim
USER_FIELDS = ("user_id", "username")

CLAIM_STATUS_OPTIONS = [
    "Claim not filed",
    "Claim not received from HBox",
    "Deductible Applied",
    "High Copay Writeoff",
    "Inpatient for DOS",
    "Insurance Paid",
    "Multiple Provider enrollment",
    "No Sec Ins",
    "Patient Deceased",
    "Policy Inactive",
    "Prim Denied",
    "Prim Pymt Pending",
    "Program not covered",
    "Sec Denied. Prim Paid more than Allowed amt",
    "Sec not paying",
    "Sec Pymt Pending",
]

DEFAULT_CLAIM_STATUS = "Pending"
