from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

SUBMISSION_FIELDS = ("name", "email", "phone", "location", "service", "message")


class ContactSubmission(BaseModel):
    """Raw contact form payload. Presence is checked against the active schema."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=50)
    location: Optional[str] = Field(default=None, max_length=200)
    service: Optional[str] = Field(default=None, max_length=200)
    message: Optional[str] = Field(default=None, max_length=10000)

    @field_validator(*SUBMISSION_FIELDS, mode="before")
    @classmethod
    def coerce_scalars(cls, v):
        # Form libraries sometimes post numbers or booleans; treat them as text.
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator(*SUBMISSION_FIELDS, mode="after")
    @classmethod
    def strip_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    def present(self, field: str) -> bool:
        return getattr(self, field) is not None


@dataclass(frozen=True)
class SubmissionSchema:
    """Which submission fields a contact form requires and accepts."""

    kind: str
    required: Tuple[str, ...]
    optional: Tuple[str, ...] = ()

    def missing(self, submission: ContactSubmission) -> Dict[str, bool]:
        return {field: not submission.present(field) for field in self.required}


BASIC_SCHEMA = SubmissionSchema(kind="basic", required=("name", "email", "message"))
EXTENDED_SCHEMA = SubmissionSchema(
    kind="extended",
    required=("name", "email", "phone", "location", "service"),
    optional=("message",),
)
SCHEMAS = {schema.kind: schema for schema in (BASIC_SCHEMA, EXTENDED_SCHEMA)}


class ContactResponse(BaseModel):
    success: bool = True
    message: str


class ContactErrorResponse(BaseModel):
    success: bool = False
    error: str
    missing: Optional[Dict[str, bool]] = None

