"""Order use cases"""
from .place_order import PlaceOrder
from .pay_order import PayOrder
from .fulfill_order import FulfillOrder
from .assign_access_codes import AssignAccessCodes
from .deliver_order_files import DeliverOrderFiles
from .cancel_order import CancelOrder
from .refund_order import RefundOrder
from .get_order import GetOrder
from .dtos import (
    PlaceOrderCommandDTO,
    PayOrderCommandDTO,
    FulfillOrderCommandDTO,
    AssignAccessCodesCommandDTO,
    DeliverOrderFilesCommandDTO,
    CancelOrderCommandDTO,
    RefundOrderCommandDTO,
    DeliveredCodeDTO,
    OrderEventDTO,
    OrderResponseDTO,
)

__all__ = [
    "PlaceOrder",
    "PayOrder",
    "FulfillOrder",
    "AssignAccessCodes",
    "DeliverOrderFiles",
    "CancelOrder",
    "RefundOrder",
    "GetOrder",
    "PlaceOrderCommandDTO",
    "PayOrderCommandDTO",
    "FulfillOrderCommandDTO",
    "AssignAccessCodesCommandDTO",
    "DeliverOrderFilesCommandDTO",
    "CancelOrderCommandDTO",
    "RefundOrderCommandDTO",
    "DeliveredCodeDTO",
    "OrderEventDTO",
    "OrderResponseDTO",
]
