import logging
import random
import uuid
from datetime import date
from typing import List, Optional

from sqlalchemy import desc, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, aliased

from aerodeliver import models, schemas
from aerodeliver.lifecycle import (
    DroneStatus,
    FleetCapacityReached,
    OrderConflict,
    OrderStatus,
    check_transition,
)
from aerodeliver.pricing import compute_price
from aerodeliver.realtime import change_feed, order_payload

logger = logging.getLogger(__name__)

DEFAULT_ETA = "15 mins"
DEFAULT_ITEM = "Package"
DEFAULT_DRONE_IMAGE = (
    "https://images.unsplash.com/photo-1473968512647-3e447244af8f"
    "?auto=format&fit=crop&q=80&w=300&h=200"
)


class DuplicateDrone(Exception):
    pass


def get_user(db: Session, user_id: int) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.id == user_id).first()


def get_user_by_email(db: Session, email: str) -> Optional[models.User]:
    return db.query(models.User).filter(models.User.email == email).first()


def create_user(db: Session, user: schemas.UserCreate) -> models.User:
    from aerodeliver.auth import get_password_hash
    user_data = user.dict()
    password = user_data.pop("password")
    db_user = models.User(
        **user_data,
        hashed_password=get_password_hash(password)
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return db_user


def update_user(db: Session, user_id: int, user_update: schemas.UserUpdate) -> Optional[models.User]:
    db_user = get_user(db, user_id)
    if db_user:
        update_data = user_update.dict(exclude_unset=True)
        for key, value in update_data.items():
            setattr(db_user, key, value)
        db.commit()
        db.refresh(db_user)
    return db_user


def set_password(db: Session, user: models.User, password: str) -> models.User:
    from aerodeliver.auth import get_password_hash
    user.hashed_password = get_password_hash(password)
    db.commit()
    db.refresh(user)
    return user


def create_auth_session(db: Session, user_id: int, session_id: str) -> models.AuthSession:
    auth_session = models.AuthSession(id=session_id, user_id=user_id)
    db.add(auth_session)
    db.commit()
    db.refresh(auth_session)
    return auth_session


def is_session_active(db: Session, session_id: str) -> bool:
    auth_session = db.get(models.AuthSession, session_id)
    return auth_session is not None and auth_session.revoked_at is None


def revoke_auth_session(db: Session, session_id: Optional[str]) -> bool:
    if not session_id:
        return False
    auth_session = db.get(models.AuthSession, session_id)
    if auth_session is None or auth_session.revoked_at is not None:
        return False
    auth_session.revoked_at = models.utc_now()
    db.commit()
    return True


def revoke_user_sessions(db: Session, user_id: int, keep: Optional[str] = None) -> int:
    sessions = db.query(models.AuthSession).filter(
        models.AuthSession.user_id == user_id,
        models.AuthSession.revoked_at.is_(None),
    )
    if keep:
        sessions = sessions.filter(models.AuthSession.id != keep)
    revoked = sessions.update({"revoked_at": models.utc_now()}, synchronize_session=False)
    db.commit()
    return revoked


def get_order(db: Session, order_id: str) -> Optional[models.Order]:
    return db.query(models.Order).filter(models.Order.id == order_id).first()


def get_orders_by_customer(db: Session, customer_id: int, skip: int = 0, limit: Optional[int] = 100) -> List[models.Order]:
    return db.query(models.Order).filter(
        models.Order.customer_id == customer_id
    ).order_by(desc(models.Order.created_at)).offset(skip).limit(limit).all()


def get_orders_by_owner(db: Session, owner_id: int, status: Optional[str] = None) -> List[models.Order]:
    query = db.query(models.Order).filter(models.Order.owner_id == owner_id)
    if status:
        query = query.filter(models.Order.status == status)
    return query.order_by(desc(models.Order.created_at)).all()


def get_open_requests(db: Session, owner_id: int) -> List[models.Order]:
    declined = select(models.OrderDecline.order_id).where(models.OrderDecline.owner_id == owner_id)
    return db.query(models.Order).filter(
        models.Order.status == OrderStatus.PENDING.value,
        models.Order.id.notin_(declined),
    ).order_by(desc(models.Order.created_at)).all()


def create_order(db: Session, order: schemas.OrderCreate, customer_id: int) -> models.Order:
    order_data = order.dict()
    for key in ("pickup", "delivery", "sender_name", "sender_phone", "recipient_name", "recipient_phone"):
        if order_data.get(key):
            order_data[key] = order_data[key].strip()
    order_data["item"] = order_data.get("item") or DEFAULT_ITEM

    db_order = models.Order(
        **order_data,
        id=str(uuid.uuid4()),
        customer_id=customer_id,
        price=compute_price(order.weight),
        status=OrderStatus.PENDING.value,
        eta=DEFAULT_ETA,
    )
    db.add(db_order)
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Error adding order for customer %s", customer_id)
        raise
    db.refresh(db_order)
    logger.info("📦 Order %s booked by customer %s, price %s", db_order.id, customer_id, db_order.price)
    return db_order


def reorder(db: Session, original: models.Order) -> models.Order:
    booking = schemas.OrderCreate(**{key: getattr(original, key) for key in schemas.OrderCreate.model_fields})
    return create_order(db, booking, customer_id=original.customer_id)


def update_order(db: Session, db_order: models.Order, order_update: schemas.OrderUpdate) -> models.Order:
    check_pending(db_order)
    update_data = order_update.dict(exclude_unset=True, exclude_none=True)
    for key, value in update_data.items():
        setattr(db_order, key, value)
    if "weight" in update_data:
        db_order.price = compute_price(db_order.weight and float(db_order.weight))
    db.commit()
    db.refresh(db_order)
    change_feed.publish(db_order.id, order_payload(db_order))
    return db_order


def delete_order(db: Session, db_order: models.Order) -> bool:
    check_pending(db_order)
    db.delete(db_order)
    db.commit()
    return True


def check_pending(db_order: models.Order) -> None:
    if db_order.status != OrderStatus.PENDING.value:
        raise OrderConflict("Only pending orders can be changed")


def count_active_missions(db: Session, owner_id: int) -> int:
    return db.query(func.count(models.Order.id)).filter(
        models.Order.owner_id == owner_id,
        models.Order.status == OrderStatus.IN_TRANSIT.value,
    ).scalar()


def accept_order(db: Session, order_id: str, owner: models.User, capacity: int) -> Optional[models.Order]:
    """Move a pending order to in-transit and stamp the accepting owner.

    The update only applies while the row is still pending, so of two owners
    racing for the same order exactly one succeeds. The owner's row is locked
    and the capacity check is repeated inside the update, so one owner's
    concurrent accepts cannot overshoot ``capacity`` either.
    """
    db_order = get_order(db, order_id)
    if db_order is None:
        return None
    if db_order.status == OrderStatus.IN_TRANSIT.value and db_order.owner_id != owner.id:
        raise OrderConflict("Order already accepted by another pilot")
    check_transition(db_order.status, OrderStatus.IN_TRANSIT)

    db.query(models.User).filter(models.User.id == owner.id).with_for_update().one()
    if count_active_missions(db, owner.id) >= capacity:
        db.rollback()
        raise FleetCapacityReached(capacity)

    missions = aliased(models.Order)
    active = select(func.count(missions.id)).where(
        missions.owner_id == owner.id,
        missions.status == OrderStatus.IN_TRANSIT.value,
    ).scalar_subquery()
    updated = db.query(models.Order).filter(
        models.Order.id == order_id,
        models.Order.status == OrderStatus.PENDING.value,
        active < capacity,
    ).update({
        "status": OrderStatus.IN_TRANSIT.value,
        "owner_id": owner.id,
        "owner_name": owner.name,
        "owner_email": owner.email,
        "accepted_at": models.utc_now(),
        "updated_at": models.utc_now(),
    }, synchronize_session=False)
    db.commit()
    if updated == 0:
        db.refresh(db_order)
        if db_order.status == OrderStatus.PENDING.value:
            raise FleetCapacityReached(capacity)
        raise OrderConflict("Order already accepted by another pilot")

    db.refresh(db_order)
    logger.info("🚁 Order %s accepted by pilot %s", order_id, owner.id)
    change_feed.publish(db_order.id, order_payload(db_order))
    return db_order


def decline_order(db: Session, order_id: str, owner: models.User) -> Optional[models.Order]:
    db_order = get_order(db, order_id)
    if db_order is None:
        return None
    check_pending(db_order)
    exists = db.query(models.OrderDecline).filter(
        models.OrderDecline.order_id == order_id,
        models.OrderDecline.owner_id == owner.id,
    ).first()
    if not exists:
        db.add(models.OrderDecline(order_id=order_id, owner_id=owner.id))
        db.commit()
    logger.info("Order %s declined by pilot %s", order_id, owner.id)
    return db_order


def deliver_order(db: Session, order_id: str, owner: models.User) -> Optional[models.Order]:
    db_order = get_order(db, order_id)
    if db_order is None:
        return None
    # another pilot's mission stays invisible whatever its status
    if db_order.owner_id is not None and db_order.owner_id != owner.id:
        return None
    check_transition(db_order.status, OrderStatus.DELIVERED)

    updated = db.query(models.Order).filter(
        models.Order.id == order_id,
        models.Order.owner_id == owner.id,
        models.Order.status == OrderStatus.IN_TRANSIT.value,
    ).update({
        "status": OrderStatus.DELIVERED.value,
        "delivered_at": models.utc_now(),
        "updated_at": models.utc_now(),
    }, synchronize_session=False)
    db.commit()
    if updated == 0:
        raise OrderConflict("Order is no longer in transit")

    db.refresh(db_order)
    logger.info("✅ Order %s delivered by pilot %s", order_id, owner.id)
    change_feed.publish(db_order.id, order_payload(db_order))
    return db_order


def get_drones_by_owner(db: Session, owner_id: int, query: Optional[str] = None,
                        status: Optional[str] = None) -> List[models.Drone]:
    drones = db.query(models.Drone).filter(models.Drone.owner_id == owner_id)
    if query and query.strip():
        pattern = f"%{query.strip().lower()}%"
        drones = drones.filter(or_(
            func.lower(models.Drone.model).like(pattern),
            func.lower(models.Drone.id).like(pattern),
        ))
    if status and status != "all":
        drones = drones.filter(models.Drone.status == status)
    return drones.order_by(models.Drone.created_at).all()


def fleet_summary(drones: List[models.Drone]) -> dict:
    total = len(drones)
    return {
        "total": total,
        "online": len([d for d in drones if d.status == DroneStatus.ACTIVE.value]),
        "avg_battery": int(sum(d.battery or 0 for d in drones) / total + 0.5) if total else 0,
    }


def generate_drone_id() -> str:
    return f"D-{random.randint(0, 999)}"


def create_drone(db: Session, drone: schemas.DroneCreate, owner_id: int) -> models.Drone:
    db_drone = models.Drone(
        id=(drone.id or "").strip() or generate_drone_id(),
        owner_id=owner_id,
        model=drone.model,
        status=DroneStatus.OFFLINE.value,
        battery=100,
        flights=0,
        hours=0,
        last_maintenance=date.today(),
        image=DEFAULT_DRONE_IMAGE,
    )
    db.add(db_drone)
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        logger.error("Error adding drone %s: %s", db_drone.id, e.orig)
        raise DuplicateDrone(db_drone.id) from e
    db.refresh(db_drone)
    logger.info("Drone %s (%s) added to fleet of owner %s", db_drone.id, db_drone.model, owner_id)
    return db_drone


def update_drone_status(db: Session, drone_id: str, owner_id: int, status: str) -> Optional[models.Drone]:
    db_drone = db.query(models.Drone).filter(
        models.Drone.id == drone_id,
        models.Drone.owner_id == owner_id,
    ).first()
    if db_drone:
        db_drone.status = status
        db.commit()
        db.refresh(db_drone)
    return db_drone
