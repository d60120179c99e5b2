from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

Role = Literal["customer", "owner"]
DroneStatusValue = Literal["active", "charging", "maintenance", "offline"]


class UserBase(BaseModel):
    email: EmailStr
    name: str


class UserCreate(UserBase):
    password: str
    role: Role
    phone: Optional[str] = None


class UserUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    avatar: Optional[str] = None


class UserResponse(UserBase):
    id: int
    role: str
    phone: Optional[str] = None
    avatar: Optional[str] = None
    is_active: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserLogin(BaseModel):
    email: EmailStr
    password: str
    role: Role


class Token(BaseModel):
    access_token: str
    token_type: str
    role: str


class PasswordChange(BaseModel):
    old_password: str
    new_password: str
    confirm_password: str


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetConfirm(BaseModel):
    access_token: str
    password: str
    confirm_password: str


class Message(BaseModel):
    message: str


class OrderBase(BaseModel):
    pickup: str
    delivery: str
    item: Optional[str] = None
    weight: Optional[float] = None
    length_cm: Optional[float] = None
    width_cm: Optional[float] = None
    height_cm: Optional[float] = None
    fragile: bool = False
    sender_name: Optional[str] = None
    sender_phone: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None


class OrderCreate(OrderBase):
    pass


class OrderUpdate(BaseModel):
    pickup: Optional[str] = None
    delivery: Optional[str] = None
    item: Optional[str] = None
    weight: Optional[float] = None
    length_cm: Optional[float] = None
    width_cm: Optional[float] = None
    height_cm: Optional[float] = None
    fragile: Optional[bool] = None
    sender_name: Optional[str] = None
    sender_phone: Optional[str] = None
    recipient_name: Optional[str] = None
    recipient_phone: Optional[str] = None


class OrderResponse(OrderBase):
    id: str
    customer_id: Optional[int] = None
    owner_id: Optional[int] = None
    owner_name: Optional[str] = None
    owner_email: Optional[str] = None
    status: str
    eta: Optional[str] = None
    price: Decimal
    duration_minutes: Optional[int] = None
    accepted_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    date: datetime = Field(validation_alias="created_at")
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class TelemetryResponse(BaseModel):
    altitude: float
    speed: float
    battery: float


class TrackingResponse(BaseModel):
    order_id: str
    status: str
    progress: float
    phase: str
    telemetry: TelemetryResponse
    point: Dict[str, float]
    path: str
    minutes_left: int


class CustomerStats(BaseModel):
    total_orders: int
    delivered: int
    in_transit: int
    spent: float


class OwnerStats(BaseModel):
    earnings: float
    deliveries: int
    flight_hours: float
    active_orders: int


class CustomerDashboard(BaseModel):
    stats: CustomerStats
    recent_orders: List[OrderResponse]


class OwnerDashboard(BaseModel):
    stats: OwnerStats
    active_missions: List[OrderResponse]
    requests: List[OrderResponse]


class EarningEntry(BaseModel):
    order: OrderResponse
    payout: float


class EarningsResponse(BaseModel):
    total_earnings: float
    completed: List[EarningEntry]


class DroneCreate(BaseModel):
    model: str
    id: Optional[str] = None


class DroneStatusUpdate(BaseModel):
    status: DroneStatusValue


class DroneResponse(BaseModel):
    id: str
    owner_id: int
    model: str
    status: str
    battery: int
    flights: int
    hours: float
    last_maintenance: Optional[date] = None
    image: Optional[str] = None

    class Config:
        from_attributes = True


class FleetSummary(BaseModel):
    total: int
    online: int
    avg_battery: int


class ContactMessage(BaseModel):
    name: str
    email: EmailStr
    topic: Optional[str] = None
    message: str
    order_id: Optional[str] = None


class SupportMessage(BaseModel):
    name: str
    email: EmailStr
    subject: str = "Delivery Status"
    message: str


class SendResponse(BaseModel):
    sent: bool
    simulated: bool
