"""
This module defines the router for job status updates.
"""
from fastapi import APIRouter

from views.status_views import StatusViewsManager


router = APIRouter(tags=["status"])

# Register the status endpoints on this router; the publisher is injected at startup
views_manager = StatusViewsManager(router)
