"""Pydantic schemas for the help & support record."""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OfficeAddress(_CamelModel):
    line1: Optional[str] = None
    line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    country: Optional[str] = None


class OfficeHours(_CamelModel):
    monday_to_friday: Optional[str] = None
    saturday: Optional[str] = None
    sunday: Optional[str] = None


class SocialLinks(_CamelModel):
    website: Optional[str] = None
    facebook: Optional[str] = None
    instagram: Optional[str] = None
    linkedin: Optional[str] = None


class FAQ(_CamelModel):
    question: str
    answer: str


class HelpUpdate(_CamelModel):
    """Partial update; fields left out keep their stored value."""
    support_email: Optional[str] = None
    support_phone: Optional[str] = None
    whatsapp_number: Optional[str] = None
    office_address: Optional[OfficeAddress] = None
    office_hours: Optional[OfficeHours] = None
    social_links: Optional[SocialLinks] = None
    faqs: Optional[List[FAQ]] = None
