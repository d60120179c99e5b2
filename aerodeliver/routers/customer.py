from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from aerodeliver import crud, models, schemas
from aerodeliver.auth import get_current_customer
from aerodeliver.database import get_db
from aerodeliver.stats import get_stats

router = APIRouter()

RECENT_ORDERS = 5


@router.get("/orders", response_model=List[schemas.OrderResponse])
def read_my_orders(
    skip: int = 0,
    limit: int = 100,
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    return crud.get_orders_by_customer(db, customer_id=current_user.id, skip=skip, limit=limit)


@router.get("/stats", response_model=schemas.CustomerStats)
def read_my_stats(
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    orders = crud.get_orders_by_customer(db, customer_id=current_user.id, limit=None)
    return get_stats("customer", orders)


@router.get("/dashboard", response_model=schemas.CustomerDashboard)
def read_dashboard(
    current_user: models.User = Depends(get_current_customer),
    db: Session = Depends(get_db)
):
    orders = crud.get_orders_by_customer(db, customer_id=current_user.id, limit=None)
    return {
        "stats": get_stats("customer", orders),
        "recent_orders": orders[:RECENT_ORDERS],
    }
