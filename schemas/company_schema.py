# company_schema.py
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class CompanyCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    address: Optional[str] = Field(default=None, max_length=255)
    phone: Optional[str] = Field(default=None, max_length=50)


class CompanyRead(BaseModel):
    id: str
    name: str
    email: str
    address: Optional[str] = None
    phone: Optional[str] = None
    stripe_account_id: Optional[str] = None
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    subscription_status: Optional[str] = None
    access_level: str
    subscription_expires_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OnboardingLinkResponse(BaseModel):
    url: str
    account_id: str


class BillingCustomerResponse(BaseModel):
    company_id: str
    stripe_customer_id: str
