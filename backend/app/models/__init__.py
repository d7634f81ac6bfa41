"""Database models"""
from app.models.order_line_item import OrderLineItem
from app.models.customer_order import CustomerOrder
from app.models.warehouse_order import WarehouseOrder
from app.models.production_order import ProductionOrder
from app.models.control_order import ControlOrder
from app.models.workstation_order import WorkstationOrder, WorkstationKind
from app.models.order_event import OrderEvent
from app.models.webhook_subscription import WebhookSubscription
from app.models.async_operation import AsyncOperation
from app.models.system_configuration import SystemConfiguration

__all__ = [
    # Order hierarchy
    "CustomerOrder",
    "WarehouseOrder",
    "ProductionOrder",
    "ControlOrder",
    "WorkstationOrder",
    "WorkstationKind",
    "OrderLineItem",
    # Audit & integrations
    "OrderEvent",
    "WebhookSubscription",
    # Infrastructure
    "AsyncOperation",
    "SystemConfiguration",
]
