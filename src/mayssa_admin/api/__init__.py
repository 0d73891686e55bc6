"""HTTP routers for the storefront and the operator console."""

from fastapi import APIRouter

from . import checkout, customers, orders, settings, stock

api_router = APIRouter()
api_router.include_router(checkout.router)
api_router.include_router(orders.router)
api_router.include_router(stock.router)
api_router.include_router(customers.router)
api_router.include_router(settings.router)
