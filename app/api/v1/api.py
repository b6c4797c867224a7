from fastapi import APIRouter

from app.api.v1.endpoints import users, gadgets

api_router = APIRouter()

# Include user-related endpoints
api_router.include_router(
    users.router, prefix="/auth", tags=["authentication"])

# Include gadget-related endpoints
api_router.include_router(
    gadgets.router, prefix="/gadgets", tags=["gadgets"])
