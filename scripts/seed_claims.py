#!/usr/bin/env python3
"""
claimdesk demo data seeder

Creates the schema, inserts demo claims and two user accounts (one
administrator) so the API and client have something to work with.

Usage:
    python scripts/seed_claims.py [--database-url <url>] [--claims <count>] [--seed <n>]

Environment variables:
    DATABASE_URL, DB_HOST/DB_PORT/DB_NAME/DB_USER/DB_PASSWORD, DB_PATH:
        used when --database-url is not given (see claimdesk.config)
"""

import argparse
import random
from datetime import date, timedelta

from claimdesk.config import database_url
from claimdesk.fields import CLAIM_STATUS_OPTIONS
from claimdesk.services import UserService
from claimdesk.storage import claims, get_engine, init_db

FIRST_NAMES = ["James", "Mary", "Robert", "Patricia", "John", "Jennifer", "Michael", "Linda"]
LAST_NAMES = ["Smith", "Johnson", "Williams", "Brown", "Jones", "Garcia", "Miller", "Davis"]
PAYERS = ["Medicare", "Aetna", "Blue Cross", "Cigna", "UnitedHealthcare", "Humana"]
PROVIDERS = ["Dr. Patel", "Dr. Nguyen", "Dr. Okafor", "Dr. Larsen"]

# (cpt_id, cpt_code, typical charge)
CPT_CODES = [
    (1, "99213", 150.00),
    (2, "99214", 225.00),
    (3, "97110", 95.00),
    (4, "90837", 180.00),
    (5, "99203", 175.00),
]

DEMO_USERS = [
    ("Admin User", "admin@example.com", "admin123", "Admin"),
    ("Billing User", "user@example.com", "user123", "User"),
]


def random_date(start: date, end: date) -> date:
    """Random date between start and end (inclusive)."""
    return start + timedelta(days=random.randint(0, max(0, (end - start).days)))


def generate_claim(index: int, patient_count: int) -> dict:
    """Build one demo claim row."""
    patient_id = random.randint(1, patient_count)
    cpt_id, cpt_code, base_charge = random.choice(CPT_CODES)
    service_end = random_date(date(2024, 1, 1), date(2025, 6, 30))
    charge = round(base_charge * random.uniform(0.9, 1.2), 2)
    allowed = round(charge * random.uniform(0.5, 0.85), 2)
    posted = random.random() < 0.6
    prim_paid = round(allowed * 0.8, 2) if posted else None

    return {
        "patient_id": patient_id,
        "patient_emr_no": f"EMR{patient_id:06d}",
        "first_name": FIRST_NAMES[patient_id % len(FIRST_NAMES)],
        "last_name": LAST_NAMES[(patient_id // len(FIRST_NAMES)) % len(LAST_NAMES)],
        "date_of_birth": random_date(date(1940, 1, 1), date(2005, 12, 31)),
        "cpt_id": cpt_id,
        "cpt_code": cpt_code,
        "provider_name": random.choice(PROVIDERS),
        "units": 1,
        "service_start": service_end,
        "service_end": service_end,
        "claim_status": random.choice(CLAIM_STATUS_OPTIONS) if posted else "Pending",
        "oa_claim_id": f"OA{index:07d}",
        "oa_visit_id": f"V{index:07d}",
        "charge_dt": service_end + timedelta(days=random.randint(1, 5)),
        "charge_amt": charge,
        "allowed_amt": allowed,
        "total_amt": charge,
        "bal_amt": round(charge - (prim_paid or 0), 2),
        "prim_ins": random.choice(PAYERS),
        "prim_amt": prim_paid,
        "prim_post_dt": service_end + timedelta(days=random.randint(20, 45)) if posted else None,
        "prim_chk_det": f"CHK{random.randint(100000, 999999)}" if posted else None,
        "prim_chk_amt": prim_paid,
    }


def seed(url: str, total_claims: int) -> None:
    engine = get_engine(url)
    init_db(engine)

    patient_count = max(1, total_claims // 3)
    rows = [generate_claim(i + 1, patient_count) for i in range(total_claims)]
    with engine.begin() as conn:
        conn.execute(claims.insert(), rows)
    print(f"Inserted {len(rows)} claims for {patient_count} patients")

    user_service = UserService(engine)
    existing = {u["email"] for u in user_service.list()}
    for name, email, password, role in DEMO_USERS:
        if email in existing:
            print(f"  User {email} already exists, skipping")
            continue
        user_service.create(name=name, email=email, password=password, role=role)
        print(f"  Created {role} user {email}")


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Seed the claimdesk database with demo data")
    parser.add_argument(
        "--database-url",
        help="SQLAlchemy database URL (default: from environment)",
    )
    parser.add_argument(
        "--claims",
        type=int,
        default=200,
        help="Number of claims to generate (default: 200)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        help="Random seed for reproducible demo data",
    )

    args = parser.parse_args()

    if args.claims < 1:
        parser.error("--claims must be a positive integer")
    if args.seed is not None:
        if args.seed < 0:
            parser.error("--seed must be a non-negative integer")
        random.seed(args.seed)
        print(f"Using random seed: {args.seed}")

    seed(args.database_url or database_url(), args.claims)


if __name__ == "__main__":
    main()
