from typing import Iterable, List

from aerodeliver.lifecycle import OrderStatus

OWNER_PAYOUT_SHARE = 0.8
FLIGHT_HOURS_PER_ORDER = 0.5


def _price(order) -> float:
    return float(order.price or 0)


def _with_status(orders, status: OrderStatus) -> list:
    return [o for o in orders if o.status == status.value]


def payout(order) -> float:
    return round(_price(order) * OWNER_PAYOUT_SHARE, 2)


def customer_stats(orders: Iterable) -> dict:
    orders = list(orders)
    return {
        "total_orders": len(orders),
        "delivered": len(_with_status(orders, OrderStatus.DELIVERED)),
        "in_transit": len(_with_status(orders, OrderStatus.IN_TRANSIT)),
        "spent": round(sum(_price(o) for o in orders), 2),
    }


def owner_stats(orders: Iterable) -> dict:
    orders = list(orders)
    delivered: List = _with_status(orders, OrderStatus.DELIVERED)
    return {
        "earnings": round(sum(_price(o) for o in delivered) * OWNER_PAYOUT_SHARE, 2),
        "deliveries": len(delivered),
        "flight_hours": len(orders) * FLIGHT_HOURS_PER_ORDER,
        "active_orders": len(_with_status(orders, OrderStatus.IN_TRANSIT)),
    }


def get_stats(role: str, orders: Iterable) -> dict:
    if role == "customer":
        return customer_stats(orders)
    if role == "owner":
        return owner_stats(orders)
    raise ValueError(f"Unknown role: {role}")
