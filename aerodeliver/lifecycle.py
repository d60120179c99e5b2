"""Order status lifecycle.

Orders only move forward: ``pending -> in-transit -> delivered``. Transitions
are applied by :mod:`aerodeliver.crud` as conditional updates, and the errors
below are raised when a transition is not allowed or was lost to a concurrent
writer.
"""
from enum import Enum
from typing import Dict, FrozenSet


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_TRANSIT = "in-transit"
    DELIVERED = "delivered"


class DroneStatus(str, Enum):
    ACTIVE = "active"
    CHARGING = "charging"
    MAINTENANCE = "maintenance"
    OFFLINE = "offline"


TRANSITIONS: Dict[OrderStatus, FrozenSet[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.IN_TRANSIT}),
    OrderStatus.IN_TRANSIT: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
}


class OrderError(Exception):
    """Base class for order lifecycle failures."""


class InvalidTransition(OrderError):
    def __init__(self, current: OrderStatus, target: OrderStatus):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move order from {current.value} to {target.value}")


class OrderConflict(OrderError):
    pass


class FleetCapacityReached(OrderError):
    def __init__(self, capacity: int):
        self.capacity = capacity
        super().__init__("Fleet capacity reached! Complete current missions before accepting more.")


def can_transition(current, target) -> bool:
    return OrderStatus(target) in TRANSITIONS[OrderStatus(current)]


def check_transition(current, target) -> None:
    current, target = OrderStatus(current), OrderStatus(target)
    if target not in TRANSITIONS[current]:
        raise InvalidTransition(current, target)
