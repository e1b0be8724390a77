# variant_hide/domain/order_states.py
from enum import Enum


class OrderState(str, Enum):
    CREATED = "Created"
    DRAFT = "Draft"
    ADDING_ITEMS = "AddingItems"
    ARRANGING_PAYMENT = "ArrangingPayment"
    PAYMENT_AUTHORIZED = "PaymentAuthorized"
    PAYMENT_SETTLED = "PaymentSettled"
    PARTIALLY_SHIPPED = "PartiallyShipped"
    SHIPPED = "Shipped"
    PARTIALLY_DELIVERED = "PartiallyDelivered"
    DELIVERED = "Delivered"
    MODIFYING = "Modifying"
    ARRANGING_ADDITIONAL_PAYMENT = "ArrangingAdditionalPayment"
    CANCELLED = "Cancelled"


class RefundState(str, Enum):
    PENDING = "Pending"
    SETTLED = "Settled"
    FAILED = "Failed"


# 仍未履约的订单：开放中 / 已付款未发货；终态订单不做追溯修改
RECONCILABLE_STATES = frozenset(
    {
        OrderState.CREATED,
        OrderState.DRAFT,
        OrderState.ADDING_ITEMS,
        OrderState.ARRANGING_PAYMENT,
        OrderState.PAYMENT_AUTHORIZED,
        OrderState.PAYMENT_SETTLED,
    }
)

# 钱已经动过：需要取消 + 退款
PAID_STATES = frozenset({OrderState.PAYMENT_AUTHORIZED, OrderState.PAYMENT_SETTLED})
