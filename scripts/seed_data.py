#!/usr/bin/env python3
"""Seed demo users and sample RFQs.

Walks a few RFQs through the lifecycle with the same service functions
the API uses, so every record carries a real activity trail.

Usage:
    python scripts/seed_data.py            # create missing users + sample RFQs
    python scripts/seed_data.py --reset    # drop and recreate all tables first

Prints a bearer token per user for trying the API.
"""

import argparse
import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from loguru import logger

from rfq_tracker.database import SessionLocal, engine
from rfq_tracker.logging_config import setup_logging
from rfq_tracker.models import Base, User
from rfq_tracker.schemas.rfqs import RfqCreate
from rfq_tracker.security import create_access_token
from rfq_tracker.services import activity_service, rfq_service

USERS = [
    {"name": "Rampal Gautam", "email": "rampal@pcbtracker.com", "role": "sales"},
    {"name": "Naman Gautam", "email": "naman@pcbtracker.com", "role": "sales"},
    {"name": "Admin User", "email": "admin@pcbtracker.com", "role": "admin"},
]


def seed_rfqs(db, owner: User) -> None:
    techcorp = rfq_service.create_rfq(db, owner, RfqCreate(
        customer_name="TechCorp Industries",
        customer_email="procurement@techcorp.com",
        part_number="PCB-4L-001",
        pcb_specs="4 layer, FR4, 1.6mm, HASL finish",
        quantity=1000, margin=7, urgency="high", confidence=60,
    ))
    activity_service.add_communication(
        db, techcorp, owner, "email", "Received RFQ for 4-layer board", direction="incoming"
    )

    electro = rfq_service.create_rfq(db, owner, RfqCreate(
        customer_name="ElectroWorks Ltd",
        customer_email="buyer@electroworks.com",
        part_number="PCB-2L-045",
        pcb_specs="2 layer, FR4, 1.0mm, ENIG finish",
        quantity=5000, margin=5.5, urgency="medium", confidence=75,
    ))
    rfq_service.record_supplier_quote(db, electro, owner, 2.45, "Lead time 3 weeks")
    rfq_service.update_stage(db, electro, owner, "quote_submitted")

    rfq_service.create_rfq(db, owner, RfqCreate(
        customer_name="Innovative Electronics",
        customer_email="rd@innovative-elec.com",
        part_number="PCB-HDI-006",
        pcb_specs="HDI, 8 layer, blind and buried vias",
        quantity=200, margin=12, urgency="urgent", confidence=40,
    ))

    global_tech = rfq_service.create_rfq(db, owner, RfqCreate(
        customer_name="Global Tech Solutions",
        customer_email="sourcing@globaltech.com",
        part_number="PCB-FLEX-012",
        pcb_specs="Flex, 2 layer, polyimide",
        quantity=500, margin=8, urgency="medium", confidence=85,
    ))
    rfq_service.record_supplier_quote(db, global_tech, owner, 5.75)
    rfq_service.send_to_customer(db, global_tech, owner, "Valid for 30 days")
    rfq_service.update_stage(db, global_tech, owner, "price_accepted")


def main():
    parser = argparse.ArgumentParser(description="Seed demo users and sample RFQs")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate all tables first")
    args = parser.parse_args()

    setup_logging()
    if args.reset:
        Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        users = []
        for fields in USERS:
            user = db.query(User).filter_by(email=fields["email"]).first()
            if user is None:
                user = User(**fields)
                db.add(user)
                db.commit()
                db.refresh(user)
            users.append(user)

        owner = users[0]
        if owner.rfqs:
            logger.info(f"{owner.email} already has {len(owner.rfqs)} RFQs, skipping samples")
        else:
            seed_rfqs(db, owner)
            logger.info(f"Seeded sample RFQs for {owner.email}")

        print("\nBearer tokens:")
        for user in users:
            print(f"  {user.email:<28} {user.role:<7} {create_access_token(user.id)}")
    finally:
        db.close()


if __name__ == "__main__":
    main()
