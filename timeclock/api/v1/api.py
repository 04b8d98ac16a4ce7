"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from timeclock.api.v1.endpoints import attendance, auth, employees, messages, reports

api_router = APIRouter()

# Auth (login, refresh, logout)
api_router.include_router(auth.router)

# Reports first: /attendance/active and /attendance/log live beside the employee routes
api_router.include_router(reports.router)

# Clock in/out, breaks, idle, own history
api_router.include_router(attendance.router)

# Employee administration
api_router.include_router(employees.router)

# Broadcast messages
api_router.include_router(messages.router)
