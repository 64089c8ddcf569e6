"""
Pydantic request models for API validation

Field names follow Python conventions; aliases accept the camelCase names
API clients send (startDate, candidateId, ...). Business rules (title
required, window order, publishability) are enforced by the election guard
on the merged state, not here.
"""

from datetime import datetime
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from database.models import CandidateGender, ElectionStatus


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    def to_patch(self) -> dict:
        """Only the fields the caller actually sent, snake_case keys"""
        return self.model_dump(exclude_unset=True)


class CandidateInput(_Request):
    id: Optional[str] = None
    name: Optional[str] = None
    party: Optional[str] = None
    gender: Optional[CandidateGender] = None

    @field_validator("name", "party", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class ElectionCreateRequest(_Request):
    title: Optional[str] = None
    description: Optional[str] = None
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")
    status: Optional[ElectionStatus] = None
    candidates: Optional[List[CandidateInput]] = None


class ElectionUpdateRequest(ElectionCreateRequest):
    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class ElectionStatusRequest(_Request):
    status: Literal["cancelled"]


class CandidateCreateRequest(_Request):
    name: str
    party: str
    gender: Optional[CandidateGender] = None

    @field_validator("name", "party")
    @classmethod
    def strip_text(cls, v: str) -> str:
        return v.strip()


class CandidateUpdateRequest(_Request):
    name: Optional[str] = None
    party: Optional[str] = None
    gender: Optional[CandidateGender] = None

    @model_validator(mode="after")
    def validate_not_empty(self):
        if not self.model_fields_set:
            raise ValueError("No fields to update")
        return self


class VoteRequest(_Request):
    candidate_id: str = Field(alias="candidateId")

    @field_validator("candidate_id")
    @classmethod
    def validate_candidate_id(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Please provide a candidate")
        return v.strip()


class SettingsUpdateRequest(_Request):
    maintenance_mode: Optional[bool] = Field(default=None, alias="maintenanceMode")
    registration_enabled: Optional[bool] = Field(default=None, alias="registrationEnabled")
