"""API routes."""

from fastapi import APIRouter

from restohub.api.routes import branches, inventory, orders

api_router = APIRouter()

api_router.include_router(orders.router, prefix="/orders", tags=["orders"])
api_router.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
api_router.include_router(branches.router, prefix="/branches", tags=["branches"])
