# repositories/company_store.py
from datetime import datetime
from typing import Optional

from sqlalchemy import or_, update
from sqlmodel import Session, select

from models.models import Company, utcnow


class CompanyStore:
    """Typed access to ``companies``; subscription fields are updated in place."""

    def __init__(self, session: Session):
        self.session = session

    def get(self, company_id: str) -> Optional[Company]:
        return self.session.get(Company, company_id)

    def get_by_customer_id(self, stripe_customer_id: str) -> Optional[Company]:
        statement = select(Company).where(Company.stripe_customer_id == stripe_customer_id)
        return self.session.exec(statement).first()

    def find_by_name_or_email(self, name: str, email: str) -> Optional[Company]:
        statement = select(Company).where(or_(Company.name == name, Company.email == email))
        return self.session.exec(statement).first()

    def add(self, company: Company) -> Company:
        self.session.add(company)
        self.session.commit()
        self.session.refresh(company)
        return company

    def rollback(self) -> None:
        self.session.rollback()

    def update_subscription(
        self,
        company_id: str,
        subscription_id: Optional[str],
        subscription_status: str,
        access_level: str,
        expires_at: Optional[datetime],
    ) -> int:
        """Overwrite the subscription mirror with one ``UPDATE ... WHERE id = ?``."""
        statement = (
            update(Company)
            .where(Company.id == company_id)
            .values(
                stripe_subscription_id=subscription_id,
                subscription_status=subscription_status,
                access_level=access_level,
                subscription_expires_at=expires_at,
                updated_at=utcnow(),
            )
        )
        result = self.session.exec(statement)
        self.session.commit()
        return result.rowcount

    def set_stripe_account_id(self, company: Company, account_id: str) -> Company:
        company.stripe_account_id = account_id
        company.updated_at = utcnow()
        return self.add(company)

    def set_stripe_customer_id(self, company: Company, customer_id: str) -> Company:
        company.stripe_customer_id = customer_id
        company.updated_at = utcnow()
        return self.add(company)
