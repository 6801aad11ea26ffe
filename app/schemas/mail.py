"""Pydantic schemas for outbound mail templates and delivery results."""

from pydantic import BaseModel, ConfigDict, Field


class MailOptions(BaseModel):
    """Subject/body templates. Every ``${URL}`` is replaced at send time."""

    model_config = ConfigDict(frozen=True)

    from_address: str = "noreply@signup.example.com"
    subject: str
    html: str = ""
    text: str = ""


class DeliveryInfo(BaseModel):
    to: str
    message_id: str
    backend: str = Field(..., description="Email backend that accepted the message")
