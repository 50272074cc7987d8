# routes/company.py
from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from core.database import get_session
from schemas.company_schema import BillingCustomerResponse, CompanyCreate, CompanyRead, OnboardingLinkResponse
from services.company_service import CompanyService
from services.stripe_gateway import StripeGateway, get_stripe_gateway

router = APIRouter(prefix="/api/companies", tags=["Companies"])


def get_company_service(
    session: Session = Depends(get_session),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> CompanyService:
    return CompanyService(session, gateway)


# ==================================================================
#  ✅ CREATE COMPANY
# ==================================================================
@router.post("", response_model=CompanyRead, status_code=status.HTTP_201_CREATED)
def create_company(
    data: CompanyCreate,
    service: CompanyService = Depends(get_company_service),
):
    return service.create_company(data)


# ==================================================================
#  ✅ GET COMPANY
# ==================================================================
@router.get("/{company_id}", response_model=CompanyRead)
def get_company(
    company_id: str,
    service: CompanyService = Depends(get_company_service),
):
    return service.get_company(company_id)


# ==================================================================
#  ✅ STRIPE CONNECT ONBOARDING
# ==================================================================
@router.post("/{company_id}/onboard", response_model=OnboardingLinkResponse)
def start_stripe_onboarding(
    company_id: str,
    service: CompanyService = Depends(get_company_service),
):
    """Create the Connect account if needed and return a fresh onboarding link."""
    account_id, url = service.create_onboarding_link(company_id)
    return OnboardingLinkResponse(url=url, account_id=account_id)


# ==================================================================
#  ✅ BILLING CUSTOMER
# ==================================================================
@router.post("/{company_id}/billing-customer", response_model=BillingCustomerResponse)
def create_billing_customer(
    company_id: str,
    service: CompanyService = Depends(get_company_service),
):
    company = service.ensure_billing_customer(service.get_company(company_id))
    return BillingCustomerResponse(company_id=company.id, stripe_customer_id=company.stripe_customer_id)
