from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from orderdesk.application import FailureKind, TransitionOutcome
from orderdesk.desk import OrderDesk
from orderdesk.domain import OrderRecord


router = APIRouter(prefix="/orders", tags=["orders"])

_FAILURE_STATUS = {
    FailureKind.CONFLICT: 409,
    FailureKind.NOT_FOUND_OR_NOT_OWNED: 404,
    FailureKind.INVALID_ARGUMENT: 400,
}


class ReasonPayload(BaseModel):
    reason: str = ""


def get_desk(request: Request) -> OrderDesk:
    return request.app.state.desk


def get_caller(request: Request, desk: OrderDesk = Depends(get_desk)) -> str:
    caller = desk.employees.resolve(request.headers.get("Authorization"))
    if caller is None:
        raise HTTPException(status_code=401, detail="Unauthorized. Invalid employee password.")
    return caller


def _serialise_order(record: OrderRecord) -> dict[str, Any]:
    contact = record.customer_contact
    return {
        "order_id": record.order_id,
        "state": record.state.value,
        "owner": record.owner,
        "claimed_at": record.claimed_at.isoformat() if record.claimed_at else None,
        "completed_at": record.completed_at.isoformat() if record.completed_at else None,
        "scheduled_for": record.scheduled_for.isoformat() if record.scheduled_for else None,
        "last_reason": record.last_reason,
        "customer": {
            "name": contact.display_name,
            "email": contact.email,
            "phone": contact.phone,
        },
    }


def _listing(records: list[OrderRecord]) -> dict:
    return {"items": [_serialise_order(record) for record in records]}


def _render(outcome: TransitionOutcome, **extra: Any) -> dict:
    if not outcome.ok:
        status = _FAILURE_STATUS.get(outcome.kind, 400) if outcome.kind else 400
        raise HTTPException(status_code=status, detail=outcome.message)
    body: dict[str, Any] = {"message": outcome.message, "order_id": outcome.order_id}
    if outcome.record is not None:
        body["order"] = _serialise_order(outcome.record)
    body.update(extra)
    return body


@router.get("/scheduled")
def list_scheduled_orders(caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)) -> dict:
    return _listing(desk.manager.list_scheduled())


@router.get("/available")
def list_available_orders(caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)) -> dict:
    return _listing(desk.manager.list_available())


@router.get("/assigned")
def list_assigned_orders(caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)) -> dict:
    return _listing(desk.manager.list_assigned(caller))


@router.get("/completed")
def list_completed_orders(caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)) -> dict:
    return _listing(desk.manager.list_completed())


@router.post("/sync/cancelled")
async def move_cancelled_orders_to_processing(
    caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)
) -> dict:
    summary = await desk.sync.reprocess_cancelled()
    if summary.failures:
        raise HTTPException(status_code=502, detail=f"sync failed: {', '.join(summary.failures)}")
    return {"reprocessed": summary.reprocessed}


@router.post("/{order_id}/claim")
def claim_order(order_id: int, caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)) -> dict:
    return _render(desk.manager.claim(order_id, caller))


@router.post("/{order_id}/complete")
def complete_order(order_id: int, caller: str = Depends(get_caller), desk: OrderDesk = Depends(get_desk)) -> dict:
    return _render(desk.manager.complete(order_id, caller))


@router.post("/{order_id}/cancel")
def cancel_order(
    order_id: int,
    payload: ReasonPayload,
    caller: str = Depends(get_caller),
    desk: OrderDesk = Depends(get_desk),
) -> dict:
    return _render(desk.manager.cancel(order_id, caller, payload.reason), reason=payload.reason)


@router.post("/{order_id}/return")
def return_order_to_queue(
    order_id: int,
    payload: ReasonPayload,
    caller: str = Depends(get_caller),
    desk: OrderDesk = Depends(get_desk),
) -> dict:
    return _render(desk.manager.manual_return(order_id, caller, payload.reason), reason=payload.reason)
