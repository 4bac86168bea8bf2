from fastapi import APIRouter

# Public: availability
from app.api.v1.public.availability import router as availability_router

# Public: bookings, per-user listing, payment hook
from app.api.v1.public.bookings import (
    router as bookings_router,
    user_router as user_bookings_router,
    payment_router,
)

# Admin
from app.api.v1.admin.bookings import router as admin_bookings_router

api_router = APIRouter()

# --- Public: availability ---
api_router.include_router(availability_router)

# --- Public: bookings ---
api_router.include_router(bookings_router)
api_router.include_router(user_bookings_router)
api_router.include_router(payment_router)

# --- Admin ---
api_router.include_router(admin_bookings_router)
