from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    status: str
    message: str
    emailConfigured: bool
    emailProvider: str
    timestamp: datetime
    uptime: float
    environment: str


class EmailCheckResponse(BaseModel):
    success: bool
    message: Optional[str] = None
    error: Optional[str] = None
