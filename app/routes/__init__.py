# app/routes/__init__.py
from fastapi import APIRouter, Depends
from app.core.rate_limit import enforce_rate_limit
from app.routes.auth import auth
from app.routes.trackers import tracker_routes
from app.routes.reviews import review_routes
from app.routes.tickets import ticket_routes
from app.routes.admin import admin_analytics


# Every /api route shares one per-client request budget
api_router = APIRouter(prefix="/api", dependencies=[Depends(enforce_rate_limit)])

# Auth routes
api_router.include_router(auth.router)

# Trip tracker routes
api_router.include_router(tracker_routes.router)

# Review routes
api_router.include_router(review_routes.router)

# Ticket routes
api_router.include_router(ticket_routes.router)

# Admin routes
api_router.include_router(admin_analytics.router)
