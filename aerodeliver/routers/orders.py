import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from aerodeliver import crud, models, schemas, tracking
from aerodeliver.auth import get_current_active_user, get_current_customer, get_current_owner
from aerodeliver.config import settings
from aerodeliver.database import get_db
from aerodeliver.lifecycle import OrderError
from aerodeliver.pricing import validate_booking
from aerodeliver.realtime import change_feed, stream_order_events

logger = logging.getLogger(__name__)

router = APIRouter()


def get_visible_order(db: Session, order_id: str, user: models.User) -> models.Order:
    db_order = crud.get_order(db, order_id=order_id)
    if db_order is None or (user.role == "customer" and db_order.customer_id != user.id):
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order


def conflict(e: OrderError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))


@router.post("/", response_model=schemas.OrderResponse, status_code=201)
def create_order(
    order: schemas.OrderCreate,
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    errors = validate_booking(order)
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})
    try:
        return crud.create_order(db=db, order=order, customer_id=current_user.id)
    except Exception:
        raise HTTPException(status_code=500, detail="Failed to create order. Try again.")


@router.get("/{order_id}", response_model=schemas.OrderResponse)
def read_order(
    order_id: str,
    current_user: models.User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    return get_visible_order(db, order_id, current_user)


@router.patch("/{order_id}", response_model=schemas.OrderResponse)
def update_order(
    order_id: str,
    order_update: schemas.OrderUpdate,
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    db_order = get_visible_order(db, order_id, current_user)
    booking = {key: getattr(db_order, key) for key in schemas.OrderCreate.model_fields}
    booking.update(order_update.dict(exclude_unset=True, exclude_none=True))
    errors = validate_booking(schemas.OrderCreate(**booking))
    if errors:
        raise HTTPException(status_code=400, detail={"errors": errors})
    try:
        return crud.update_order(db, db_order, order_update)
    except OrderError as e:
        raise conflict(e)


@router.delete("/{order_id}", status_code=204)
def delete_order(
    order_id: str,
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    db_order = get_visible_order(db, order_id, current_user)
    try:
        crud.delete_order(db, db_order)
    except OrderError as e:
        raise conflict(e)
    return None


@router.post("/{order_id}/reorder", response_model=schemas.OrderResponse, status_code=201)
def reorder(
    order_id: str,
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    db_order = get_visible_order(db, order_id, current_user)
    return crud.reorder(db, db_order)


@router.post("/{order_id}/accept", response_model=schemas.OrderResponse)
def accept_order(
    order_id: str,
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    try:
        db_order = crud.accept_order(db, order_id, current_user, capacity=settings.fleet_capacity)
    except OrderError as e:
        raise conflict(e)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order


@router.post("/{order_id}/decline", response_model=schemas.Message)
def decline_order(
    order_id: str,
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    try:
        db_order = crud.decline_order(db, order_id, current_user)
    except OrderError as e:
        raise conflict(e)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return {"message": "Request declined. Removing from feed..."}


@router.post("/{order_id}/deliver", response_model=schemas.OrderResponse)
def deliver_order(
    order_id: str,
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    try:
        db_order = crud.deliver_order(db, order_id, current_user)
    except OrderError as e:
        raise conflict(e)
    if db_order is None:
        raise HTTPException(status_code=404, detail="Order not found")
    return db_order


@router.get("/{order_id}/tracking", response_model=schemas.TrackingResponse)
def track_order(
    order_id: str,
    current_user: models.User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    db_order = get_visible_order(db, order_id, current_user)
    snap = tracking.track_order(db_order)
    return {
        "order_id": db_order.id,
        "status": snap.status,
        "progress": snap.progress,
        "phase": snap.phase,
        "telemetry": {"altitude": snap.altitude, "speed": snap.speed, "battery": snap.battery},
        "point": {"x": snap.x, "y": snap.y},
        "path": tracking.RoutePath.SVG,
        "minutes_left": snap.minutes_left,
    }


@router.get("/{order_id}/events")
def order_events(
    order_id: str,
    request: Request,
    current_user: models.User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    try:
        get_visible_order(db, order_id, current_user)
    finally:
        # release the pooled connection before the long-lived stream starts
        db.close()
    return StreamingResponse(
        stream_order_events(change_feed, order_id, request.is_disconnected),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
    )
