"""Table definitions for the claims store.

Defined with SQLAlchemy Core so the same schema is created on PostgreSQL
(production) and SQLite (development and tests).
"""

from __future__ import annotations

from sqlalchemy import (
    Column,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)

metadata = MetaData()

claims = Table(
    "claims",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    # Patient identity
    Column("patient_id", Integer, nullable=False),
    Column("patient_emr_no", String(64)),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100), nullable=False),
    Column("date_of_birth", Date),
    # Visit / CPT line item
    Column("cpt_id", Integer, nullable=False),
    Column("cpt_code", String(16)),
    Column("icd_code", String(32)),
    Column("provider_name", String(200)),
    Column("units", Integer),
    Column("service_start", Date),
    Column("service_end", Date),
    Column("claim_status", String(100), nullable=False, default="Pending"),
    Column("claim_status_type", String(100)),
    # Claim & billing
    Column("oa_claim_id", String(64)),
    Column("oa_visit_id", String(64)),
    Column("charge_dt", Date),
    Column("charge_amt", Float),
    Column("allowed_amt", Float),
    Column("allowed_add_amt", Float),
    Column("allowed_exp_amt", Float),
    Column("total_amt", Float),
    Column("charges_adj_amt", Float),
    Column("write_off_amt", Float),
    Column("bal_amt", Float),
    Column("reimb_pct", Float),
    # Primary insurance
    Column("prim_ins", String(200)),
    Column("prim_amt", Float),
    Column("prim_post_dt", Date),
    Column("prim_chk_det", String(200)),
    Column("prim_recv_dt", Date),
    Column("prim_chk_amt", Float),
    Column("prim_cmt", Text),
    # Secondary insurance and patient payment
    Column("sec_ins", String(200)),
    Column("sec_amt", Float),
    Column("sec_post_dt", Date),
    Column("sec_chk_det", String(200)),
    Column("sec_recv_dt", Date),
    Column("sec_chk_amt", Float),
    Column("sec_cmt", Text),
    Column("sec_denial_code", String(100)),
    Column("pat_amt", Float),
    Column("pat_recv_dt", Date),
    Column("notes", Text),
)

Index("idx_claims_patient", claims.c.patient_id)
Index("idx_claims_cpt", claims.c.cpt_id)
Index("idx_claims_service_end", claims.c.service_end)

claim_change_log = Table(
    "claim_change_log",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("claim_id", Integer, ForeignKey("claims.id"), nullable=False),
    Column("user_id", Integer),
    Column("username", String(200)),
    Column("field_name", String(64), nullable=False),
    Column("old_value", Text),
    Column("new_value", Text),
    Column("changed_at", DateTime(timezone=True), nullable=False),
)

Index("idx_change_log_claim", claim_change_log.c.claim_id)
Index("idx_change_log_user", claim_change_log.c.user_id)
Index("idx_change_log_changed_at", claim_change_log.c.changed_at)

users = Table(
    "users",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("role", String(20), nullable=False, default="User"),
    Column("password_hash", String(512), nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)
