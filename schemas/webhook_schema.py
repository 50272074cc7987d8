# webhook_schema.py
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class StripeEventData(BaseModel):
    object: Dict[str, Any]
    previous_attributes: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class StripeEvent(BaseModel):
    """Envelope of a verified Stripe event. Built only by the webhook verifier."""

    id: str
    type: str
    livemode: bool = False
    created: Optional[int] = None
    api_version: Optional[str] = None
    data: StripeEventData

    model_config = ConfigDict(extra="ignore")

    @property
    def data_object(self) -> Dict[str, Any]:
        return self.data.object


class WebhookAck(BaseModel):
    received: bool = Field(default=True)
