# app/api/v1/api.py
from fastapi import APIRouter
from app.api.v1.endpoints import (
    admin_orders,
    admin_vouchers,
    health,
    internals,
    loyalty,
    orders,
    shipping_methods,
    vouchers,
)

api_router = APIRouter()

api_router.include_router(orders.router)
api_router.include_router(admin_orders.router)
api_router.include_router(internals.router)
api_router.include_router(vouchers.router)
api_router.include_router(admin_vouchers.router)
api_router.include_router(shipping_methods.router)
api_router.include_router(loyalty.router)
api_router.include_router(health.router)
