"""Pydantic request schemas for the HTTP API.

These exist only for HTTP input validation. Domain checks (zero amounts,
recipients, authority) stay in the ledger so the HTTP and in-process paths
reject the same things with the same reasons.

Amounts are integers in base units (10**-18 USM).
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class CallerRequest(BaseModel):
    caller: str = Field(..., description="Account id of the caller")


class TransferRequest(CallerRequest):
    to: str = Field(..., description="Recipient account id")
    amount: int = Field(..., description="Amount in base units")


class TransferFromRequest(CallerRequest):
    from_address: str = Field(..., alias="from", description="Account whose allowance is spent")
    to: str = Field(..., description="Recipient account id")
    amount: int = Field(..., description="Amount in base units")

    model_config = {"populate_by_name": True}


class ApproveRequest(CallerRequest):
    spender: str = Field(..., description="Account allowed to spend")
    amount: int = Field(..., description="Allowance in base units")


class MintRequest(CallerRequest):
    amount: int = Field(..., description="Amount in base units, credited to the treasury")


class SendRequest(CallerRequest):
    to: str = Field(..., description="Recipient account id")
    amount: int = Field(..., description="Amount in base units")


class TransferOwnershipRequest(CallerRequest):
    new_owner: str = Field(..., description="Account id of the new owner")


class ProposeBurnRateRequest(CallerRequest):
    rate: int = Field(..., description="Burn rate in tenths of a percent (10 = 1%)")


class ExecuteBurnRateRequest(BaseModel):
    # Anyone may execute once the timelock has elapsed.
    caller: str = Field(default="", description="Account id of the caller")


class ToggleBurnRequest(CallerRequest):
    enabled: bool = Field(..., description="Enable or disable burn-on-transfer")
