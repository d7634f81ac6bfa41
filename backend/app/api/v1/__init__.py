"""
API v1 Router - FactoryFlow
"""
from fastapi import APIRouter
from app.api.v1.endpoints import (
    audit,
    control_orders,
    customer_orders,
    operations,
    production_orders,
    system_config,
    warehouse_orders,
    workstation_orders,
)

router = APIRouter()

# Customer Orders (intake, scenario classification, fulfillment)
router.include_router(
    customer_orders.router,
    prefix="/customer-orders",
    tags=["customer-orders"]
)

# Warehouse Orders (module replenishment)
router.include_router(
    warehouse_orders.router,
    prefix="/warehouse-orders",
    tags=["warehouse-orders"]
)

# Production Orders
router.include_router(
    production_orders.router,
    prefix="/production-orders",
    tags=["production"]
)

# Control Orders
router.include_router(
    control_orders.router,
    prefix="/control-orders",
    tags=["production"]
)

# Workstation Orders
router.include_router(
    workstation_orders.router,
    prefix="/workstation-orders",
    tags=["workstations"]
)

# Async Operations
router.include_router(
    operations.router,
    prefix="/operations",
    tags=["operations"]
)

# Audit trail and webhooks
router.include_router(
    audit.router,
    prefix="/audit",
    tags=["audit"]
)
router.include_router(
    audit.webhooks_router,
    prefix="/webhooks",
    tags=["audit"]
)

# System Configuration
router.include_router(
    system_config.router,
    prefix="/system-config",
    tags=["system"]
)
