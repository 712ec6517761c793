"""
API router - aggregates all endpoint modules under /api.
"""

from fastapi import APIRouter

from garage.api.endpoints import auth, cars, health

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(cars.router, prefix="/cars", tags=["cars"])
