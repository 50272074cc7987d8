# scripts/seed.py

import os
import sys
import argparse

from dotenv import load_dotenv
from sqlmodel import Session, select

# Ensure root path for relative imports
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

# ✅ Load environment variables before settings are read
load_dotenv()

from core.database import create_db_and_tables, engine  # noqa: E402
from models.models import Company, PaymentTransaction  # noqa: E402


def seed_dev_data(customer_id: str = None, account_id: str = None):
    """Seed development database with a demo company and one pending transaction."""
    print("🌱 Seeding development data...")
    create_db_and_tables()

    with Session(engine) as session:
        # -----------------------------
        # 🏢 Demo Company
        # -----------------------------
        company = session.exec(select(Company).where(Company.name == "Demo Company")).first()

        if not company:
            company = Company(
                name="Demo Company",
                email="billing@demo.com",
                stripe_customer_id=customer_id,
                stripe_account_id=account_id,
            )
            session.add(company)
            session.commit()
            session.refresh(company)
            print(f"✅ Created Demo Company ({company.id})")

        # -----------------------------
        # 💳 Pending Transaction
        # -----------------------------
        existing = session.exec(
            select(PaymentTransaction).where(PaymentTransaction.stripe_payment_intent_id == "pi_demo_seed")
        ).first()

        if not existing:
            session.add(
                PaymentTransaction(
                    company_id=company.id,
                    customer="demo-customer",
                    amount=5000,
                    currency="eur",
                    stripe_payment_intent_id="pi_demo_seed",
                    description="Seeded demo payment",
                    payment_metadata={"source": "seed"},
                )
            )
            session.commit()
            print("✅ Added pending demo transaction (pi_demo_seed)")

    print("🌱 Done.")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed development data")
    parser.add_argument("--customer-id", help="Stripe customer id for the demo company")
    parser.add_argument("--account-id", help="Stripe Connect account id for the demo company")
    args = parser.parse_args()
    seed_dev_data(customer_id=args.customer_id, account_id=args.account_id)
