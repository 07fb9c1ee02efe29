from typing import Optional

from pydantic import BaseModel


class HealthResponse(BaseModel):
    ok: bool = True


class ServiceInfo(BaseModel):
    status: str = "online"
    name: str
    version: str
    environment: str


class StoreDiagnostic(BaseModel):
    status: str
    rows: Optional[int] = None
    error: Optional[str] = None
    code: Optional[str] = None
