# reward_routes.py
"""
Reward claim endpoints.

The claim endpoints always answer with a structured body; failures carry
failureReason, errorKind and, when known, txReference so an operator can
reconcile before anyone retries.
"""
from __future__ import annotations

import logging
from typing import Optional, Union

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, Field

from claim_service import ClaimService
from errors import ValidationError, status_for_kind
from models import ChainKind, ClaimRequest, SettlementResult
from wallets import get_claim_service

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/rewards", tags=["rewards"])


class ClaimBody(BaseModel):
    model_config = {"populate_by_name": True}

    recipient_address: Optional[str] = Field(default=None, alias="recipientAddress")
    points: Optional[float] = Field(default=None, allow_inf_nan=False)
    explicit_amount: Optional[Union[int, str]] = Field(
        default=None,
        validation_alias=AliasChoices("explicitAmount", "amountDrops", "amountWei"),
    )
    memo: Optional[str] = None
    chain: Optional[str] = None


def _parse_amount(value: Optional[Union[int, str]]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"explicitAmount must be an integer in minor units, got {value!r}")


def _respond(result: SettlementResult, chain: Optional[str] = None) -> JSONResponse:
    body = result.to_response()
    if result.ok:
        if chain:
            body["chain"] = chain
        return JSONResponse(body, status_code=200)
    return JSONResponse(body, status_code=status_for_kind(result.error_kind))


def _claim(body: ClaimBody, default_chain: ChainKind, service: ClaimService) -> JSONResponse:
    chain = body.chain or default_chain.value
    try:
        amount = _parse_amount(body.explicit_amount)
    except ValidationError as e:
        return _respond(SettlementResult.rejected(e.kind, e.message))

    req = ClaimRequest(
        recipient_address=(body.recipient_address or "").strip(),
        chain=chain,
        points=body.points,
        explicit_amount=amount,
        memo=body.memo,
    )
    result = service.claim(req)
    return _respond(result, chain)


@router.post("/claim")
def claim_native(body: ClaimBody, service: ClaimService = Depends(get_claim_service)):
    return _claim(body, ChainKind.NATIVE, service)


@router.post("/claim-evm")
def claim_evm(body: ClaimBody, service: ClaimService = Depends(get_claim_service)):
    return _claim(body, ChainKind.EVM, service)
