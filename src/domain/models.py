"""
Domain Models

Order records as stored in the document store, plus the enumerations that
drive filtering and time bucketing.

Order documents use camelCase field names (``totalAmount``, ``createdAt``);
models accept both those and the snake_case attribute names.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from src.domain.errors import MalformedRecord


# =============================================================================
# ENUMERATIONS
# =============================================================================

class OrderStatus(str, Enum):
    """Order lifecycle status"""
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TimeFrame(str, Enum):
    """Granularity used to bucket order timestamps"""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# DOCUMENT MODELS
# =============================================================================

class BasketItem(BaseModel):
    """A single laundry item in an order basket"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: str = ""
    price: float = 0.0
    quantity: int = 0
    fold: bool = False
    ironing: bool = False

    @property
    def line_total(self) -> float:
        return self.price * self.quantity


class ShippingAddress(BaseModel):
    """Pickup/delivery address"""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    address_string: str = Field(default="", alias="addressString")
    latitude: Optional[float] = None
    longitude: Optional[float] = None


class Order(BaseModel):
    """
    Laundry order as read from the order collection.

    ``created_at`` is optional: a freshly written document may not carry its
    server timestamp yet. Such orders are listed but never aggregated.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    id: str
    order_id: Optional[str] = Field(default=None, alias="orderId")
    total_amount: float = Field(default=0.0, ge=0, alias="totalAmount")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    status: str = ""

    baskets: List[BasketItem] = Field(default_factory=list)
    fold_fees: float = Field(default=0.0, alias="foldFees")
    ironing_fees: float = Field(default=0.0, alias="ironingFees")
    transportation_fees: float = Field(default=0.0, alias="transportationFees")
    pickup_date: Optional[datetime] = Field(default=None, alias="pickupDate")
    delivery_date: Optional[datetime] = Field(default=None, alias="deliveryDate")
    shipping_address: Optional[ShippingAddress] = Field(default=None, alias="shippingAddress")
    user_email: Optional[str] = Field(default=None, alias="userEmail")
    user_id: Optional[str] = Field(default=None, alias="userId")

    @field_validator("total_amount", "fold_fees", "ironing_fees", "transportation_fees", mode="before")
    @classmethod
    def missing_amount_is_zero(cls, v: Any) -> Any:
        return 0.0 if v is None else v

    @property
    def subtotal(self) -> float:
        """Sum of basket line totals, before fees"""
        return sum(item.line_total for item in self.baskets)

    @property
    def is_timestamped(self) -> bool:
        return self.created_at is not None

    @classmethod
    def from_document(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> "Order":
        """
        Build an Order from a document id and its field map.

        Raises:
            MalformedRecord: If the field map cannot be decoded into an Order
        """
        try:
            return cls.model_validate({**(data or {}), "id": doc_id})
        except ValidationError as e:
            raise MalformedRecord(doc_id, str(e)) from e
