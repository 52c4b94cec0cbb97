"""
HTTP routes for the remittance operations.

Every route forwards validated arguments to a service and returns the
``OperationResult`` envelope. Business failures are HTTP 200 with
``ok: false``; malformed requests are rejected by FastAPI with 422.
"""
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends, Query
from fastapi.responses import JSONResponse

from ..core.errors import OperationResult
from ..core.observability import REQUEST_LATENCY
from ..models.enums import TransferMode
from ..models.requests import (
    DelayInquiryRequest,
    EscalationRequest,
    OrderListQuery,
    SettlementNotification,
    TransferRequest,
    VerifyIdentityRequest,
)
from ..services.container import BrokerContainer
from .dependencies import get_container, get_user_id

router = APIRouter(prefix="/api/v1")
callback_router = APIRouter()


def respond(result: OperationResult) -> JSONResponse:
    return JSONResponse(result.to_payload())


# Verification

@router.post("/verification", tags=["Verification"])
def verify_identity(
    request: VerifyIdentityRequest,
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="verify_identity").time():
        result = container.verification.verify(user_id, request.last_four_digits, request.expiry_date)
    return respond(result)


@router.get("/verification", tags=["Verification"])
def verification_status(
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="verification_status").time():
        result = container.verification.status(user_id)
    return respond(result)


@router.delete("/verification", tags=["Verification"])
def clear_verification(
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    return respond(container.verification.clear(user_id))


# Transfers

@router.post("/transfers", tags=["Transfers"])
def transfer_money(
    request: Optional[TransferRequest] = Body(default=None),
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    """Discovery when the body is empty, execution when it names a beneficiary and amount."""
    with REQUEST_LATENCY.labels(endpoint="transfer_money").time():
        result = container.transfers.transfer(user_id, request or TransferRequest())
    return respond(result)


# Orders

@router.get("/orders", tags=["Orders"])
def list_orders(
    transfer_mode: Optional[TransferMode] = Query(default=None, alias="transferMode"),
    country: Optional[str] = Query(default=None, min_length=2, max_length=2),
    currency: Optional[str] = Query(default=None, min_length=3, max_length=3),
    order_date: Optional[date] = Query(default=None, alias="orderDate"),
    count: int = Query(default=10, ge=1, le=50),
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    query = OrderListQuery(
        transfer_mode=transfer_mode,
        country=country,
        currency=currency,
        order_date=order_date,
        count=count,
    )
    with REQUEST_LATENCY.labels(endpoint="list_orders").time():
        result = container.disclosure.list_orders(user_id, query)
    return respond(result)


@router.get("/orders/delayed", tags=["Orders"])
def delayed_orders(
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    return respond(container.delays.delayed_orders(user_id))


@router.get("/orders/{order_no}", tags=["Orders"])
def check_status(
    order_no: str,
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="check_status").time():
        result = container.disclosure.check_status(user_id, order_no)
    return respond(result)


@router.post("/orders/{order_no}/refresh", tags=["Orders"])
def refresh_status(
    order_no: str,
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="refresh_status").time():
        result = container.disclosure.refresh(user_id, order_no)
    return respond(result)


@router.get("/orders/{order_no}/timeframe", tags=["Orders"])
def order_timeframe(
    order_no: str,
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="order_timeframe").time():
        result = container.delays.timeframe(user_id, order_no)
    return respond(result)


@router.post("/orders/{order_no}/delay-inquiry", tags=["Orders"])
def delay_inquiry(
    order_no: str,
    request: Optional[DelayInquiryRequest] = Body(default=None),
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    satisfaction = request.satisfaction if request else None
    with REQUEST_LATENCY.labels(endpoint="delay_inquiry").time():
        result = container.delays.handle_delay_inquiry(user_id, order_no, satisfaction)
    return respond(result)


@router.post("/orders/{order_no}/escalations", tags=["Orders"])
def escalate_order(
    order_no: str,
    request: EscalationRequest,
    user_id: str = Depends(get_user_id),
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="escalate_order").time():
        result = container.tracker.escalate(
            user_id, order_no, request.reason, request.summary, request.level
        )
    return respond(result)


# Settlement callback

@callback_router.post("/callback/remittance", tags=["Callbacks"])
def settlement_callback(
    notification: SettlementNotification,
    container: BrokerContainer = Depends(get_container),
) -> JSONResponse:
    with REQUEST_LATENCY.labels(endpoint="settlement_callback").time():
        result = container.settlement.apply(notification)
    return respond(result)
