"""
Debug router exposing process metrics.
"""
from fastapi import APIRouter, Request

from support.debug_vars import collect_debug_vars


router = APIRouter(
    prefix="/debug",
    tags=["debug"],
)


@router.get("/vars")
async def debug_vars(request: Request):
    """Process and publisher metrics as a flat JSON document."""
    publisher = getattr(request.app.state, "job_update_publisher", None)
    return collect_debug_vars(publisher)
