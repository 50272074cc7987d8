# services/company_service.py
import logging

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from core.config import settings
from core.exceptions import ConflictError, NotFoundError
from models.models import Company
from repositories.company_store import CompanyStore
from schemas.company_schema import CompanyCreate
from services.stripe_gateway import StripeGateway

logger = logging.getLogger(__name__)


class CompanyService:
    def __init__(self, session: Session, gateway: StripeGateway):
        self.companies = CompanyStore(session)
        self.stripe = gateway

    def create_company(self, data: CompanyCreate) -> Company:
        if self.companies.find_by_name_or_email(data.name, data.email):
            raise ConflictError("Company with this name or email already exists.")

        company = Company(name=data.name, email=data.email, address=data.address, phone=data.phone)
        try:
            company = self.companies.add(company)
        except IntegrityError:
            # Lost a race with a concurrent create
            self.companies.rollback()
            raise ConflictError("Company with this name or email already exists.")

        logger.info(f"🏢 Created company {company.name} ({company.id})")
        return company

    def get_company(self, company_id: str) -> Company:
        company = self.companies.get(company_id)
        if not company:
            raise NotFoundError("Company not found")
        return company

    def ensure_billing_customer(self, company: Company) -> Company:
        """Create the Stripe customer used for subscriptions, once."""
        if company.stripe_customer_id:
            return company

        customer = self.stripe.create_customer(
            email=company.email,
            name=company.name,
            metadata={"companyId": company.id},
        )
        company = self.companies.set_stripe_customer_id(company, customer["id"])
        logger.info(f"💳 Created Stripe customer {customer['id']} for company {company.id}")
        return company

    def create_onboarding_link(self, company_id: str):
        """
        Return (account id, onboarding url) for the company's Connect account,
        creating the account on first use.
        """
        company = self.get_company(company_id)

        if company.stripe_account_id:
            account = self.stripe.retrieve_account(company.stripe_account_id)
        else:
            account = self.stripe.create_account(email=company.email, metadata={"companyId": company.id})
            company = self.companies.set_stripe_account_id(company, account["id"])
            logger.info(f"🔗 Created Connect account {account['id']} for company {company.id}")

        account_link = self.stripe.create_account_link(
            account["id"],
            refresh_url=f"{settings.APP_BASE_URL}/stripe/onboard-refresh?companyId={company.id}",
            return_url=f"{settings.APP_BASE_URL}/stripe/onboard-success?companyId={company.id}",
        )
        return account["id"], account_link["url"]
