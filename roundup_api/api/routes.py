"""
Main API router that includes all route modules
"""

from fastapi import APIRouter

from roundup_api.api.v1 import organizations, transactions

api_router = APIRouter()

# Include all route modules
api_router.include_router(organizations.router, prefix="/organizations", tags=["organizations"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
