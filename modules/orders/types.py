from enum import Enum


class OrderStatus(str, Enum):
    PENDING = "pending"
    IN_PRODUCTION = "in_production"
    FINISHED = "finished"
    CANCELLED = "cancelled"


ALLOWED_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.IN_PRODUCTION, OrderStatus.CANCELLED},
    OrderStatus.IN_PRODUCTION: {OrderStatus.FINISHED, OrderStatus.CANCELLED},
    OrderStatus.FINISHED: set(),
    OrderStatus.CANCELLED: set(),
}
