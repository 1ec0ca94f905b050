"""HTTP route definitions for the service."""

from __future__ import annotations

from fastapi import APIRouter, Response, status

router = APIRouter()


@router.get(
    "/health",
    summary="Health check endpoint.",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
)
async def healthcheck() -> Response:
    return Response(status_code=status.HTTP_204_NO_CONTENT)
