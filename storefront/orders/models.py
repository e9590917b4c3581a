# module storefront.orders.models
from enum import Enum


class OrderStatus(str, Enum):
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(str, Enum):
    CARD = "card"
    WALLET = "wallet"
