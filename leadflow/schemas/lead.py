"""Schemas for lead submission."""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

LEAD_SOURCE = "Web"


class LeadCreateRequest(BaseModel):
    """Lead form payload posted by the browser.

    Every field is optional here; required fields are enforced by the
    Salesforce client so the API can answer 401 before 400.
    """

    model_config = ConfigDict(populate_by_name=True)

    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    company: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None

    def missing_required(self) -> list[str]:
        missing = []
        if not (self.last_name or "").strip():
            missing.append("lastName")
        if not (self.company or "").strip():
            missing.append("company")
        return missing

    def to_salesforce(self) -> Dict[str, Any]:
        """Map onto the Lead sObject field names, leaving out unset fields."""
        fields = {
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "Company": self.company,
            "Email": self.email,
            "Phone": self.phone,
            "LeadSource": LEAD_SOURCE,
        }
        return {name: value for name, value in fields.items() if value is not None}


class LeadCreated(BaseModel):
    success: bool = True
    id: str
    message: str = "Lead created successfully"


__all__ = ["LEAD_SOURCE", "LeadCreateRequest", "LeadCreated"]
