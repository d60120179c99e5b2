from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from aerodeliver import crud, models, schemas
from aerodeliver.auth import get_current_owner
from aerodeliver.database import get_db
from aerodeliver.lifecycle import OrderStatus
from aerodeliver.stats import get_stats, payout

router = APIRouter()


@router.get("/requests", response_model=List[schemas.OrderResponse])
def read_requests(
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    return crud.get_open_requests(db, owner_id=current_user.id)


@router.get("/missions", response_model=List[schemas.OrderResponse])
def read_missions(
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    return crud.get_orders_by_owner(db, owner_id=current_user.id, status=OrderStatus.IN_TRANSIT.value)


@router.get("/stats", response_model=schemas.OwnerStats)
def read_stats(
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    return get_stats("owner", crud.get_orders_by_owner(db, owner_id=current_user.id))


@router.get("/dashboard", response_model=schemas.OwnerDashboard)
def read_dashboard(
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    orders = crud.get_orders_by_owner(db, owner_id=current_user.id)
    return {
        "stats": get_stats("owner", orders),
        "active_missions": [o for o in orders if o.status == OrderStatus.IN_TRANSIT.value],
        "requests": crud.get_open_requests(db, owner_id=current_user.id),
    }


@router.get("/earnings", response_model=schemas.EarningsResponse)
def read_earnings(
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    completed = crud.get_orders_by_owner(db, owner_id=current_user.id, status=OrderStatus.DELIVERED.value)
    return {
        "total_earnings": get_stats("owner", completed)["earnings"],
        "completed": [{"order": order, "payout": payout(order)} for order in completed],
    }


@router.get("/drones", response_model=List[schemas.DroneResponse])
def read_drones(
    q: Optional[str] = Query(None, description="Search by model or ID"),
    drone_status: Optional[str] = Query(None, alias="status"),
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    return crud.get_drones_by_owner(db, owner_id=current_user.id, query=q, status=drone_status)


@router.get("/drones/summary", response_model=schemas.FleetSummary)
def read_fleet_summary(
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    return crud.fleet_summary(crud.get_drones_by_owner(db, owner_id=current_user.id))


@router.post("/drones", response_model=schemas.DroneResponse, status_code=status.HTTP_201_CREATED)
def create_drone(
    drone: schemas.DroneCreate,
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    if not drone.model.strip():
        raise HTTPException(status_code=400, detail="Drone model is required")
    try:
        return crud.create_drone(db, drone, owner_id=current_user.id)
    except crud.DuplicateDrone as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=f"Drone {e} already exists")


@router.patch("/drones/{drone_id}/status", response_model=schemas.DroneResponse)
def update_drone_status(
    drone_id: str,
    update: schemas.DroneStatusUpdate,
    current_user: models.User = Depends(get_current_owner),
    db: Session = Depends(get_db)
):
    db_drone = crud.update_drone_status(db, drone_id, owner_id=current_user.id, status=update.status)
    if db_drone is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Drone not found")
    return db_drone
