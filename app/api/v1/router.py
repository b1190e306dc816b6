"""API V1 Router"""

from fastapi import APIRouter

# Import endpoint routers
from app.api.v1.endpoints import (
    auth, users, classes, bills, banking,
    teacher_banking, storefront, tasks
)

# Create API v1 router
api_router = APIRouter()

# Include endpoint routers with prefixes and tags
api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["Users"])
api_router.include_router(classes.router, prefix="/classes", tags=["Classes"])
api_router.include_router(bills.router, prefix="/bills", tags=["Bills"])
api_router.include_router(banking.router, prefix="/banking", tags=["Student Banking"])
api_router.include_router(teacher_banking.router, prefix="/teacher/banking", tags=["Teacher Banking"])
api_router.include_router(storefront.router, prefix="/storefront", tags=["Storefront"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["Scheduled Tasks"])
