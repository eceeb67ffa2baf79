from pydantic import BaseModel, Field
from typing import Literal
from datetime import datetime


class TransferRequest(BaseModel):
    sender: str = Field(..., min_length=1, description="IBAN of the account to deduct from")
    recipient: str = Field(..., min_length=1, description="IBAN of the account to credit")
    amount: float = Field(..., strict=True, allow_inf_nan=False, description="Amount to transfer")


class AccountDetails(BaseModel):
    """One entry of the account listing envelope."""
    iban: str = Field(..., description="Account IBAN")
    balance: float = Field(..., description="Balance rounded to cents")
    fractions: float = Field(..., description="Accumulated sub-cent remainder")
    status: str = Field(..., description="Localized account status")


class EmissionRequest(BaseModel):
    amount: float = Field(..., allow_inf_nan=False, description="Amount to emit")


class DestructionRequest(BaseModel):
    iban: str = Field(..., min_length=1, description="IBAN of the account to deduct from")
    amount: float = Field(..., allow_inf_nan=False, description="Amount to destroy")


class IbanResponse(BaseModel):
    iban: str = Field(..., description="Account IBAN")


class OperationResponse(BaseModel):
    status: Literal["processed"] = Field(..., description="Operation status")
    timestamp: datetime = Field(default_factory=datetime.now)


class ErrorResponse(BaseModel):
    detail: str = Field(..., description="Error description")
    error_code: str = Field(..., description="Machine-readable error code")
    timestamp: datetime = Field(default_factory=datetime.now, description="Error timestamp")


class HealthResponse(BaseModel):
    status: str = Field(..., description="Service health status")
    timestamp: datetime = Field(default_factory=datetime.now)
    accounts_count: int = Field(..., description="Number of accounts in the ledger")
