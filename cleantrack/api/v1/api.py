"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from cleantrack.api.v1.endpoints import attendance, auth, leave, reports, usage

api_router = APIRouter()

# Auth (login, refresh, logout, profile)
api_router.include_router(auth.router)

# Disposal recording and count adjustment
api_router.include_router(usage.router)

# Attendance taps, board, matrix and admin edits
api_router.include_router(attendance.router)

# Leave requests and balances
api_router.include_router(leave.router)

# Reports, overrides, health, status
api_router.include_router(reports.router)
