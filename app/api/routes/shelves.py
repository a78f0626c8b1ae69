"""Shelf routes."""

from fastapi import APIRouter, Depends, status

from app.api.dependencies import get_shelf_service
from app.api.middleware.auth import get_current_user
from app.api.schemas import ShelfCreateRequest, ShelfResponse
from app.domain.models import User
from app.services.shelf import ShelfService

router = APIRouter(prefix="/shelves", tags=["Shelves"])


@router.post("", response_model=ShelfResponse, status_code=status.HTTP_201_CREATED)
async def add_to_shelf(
    data: ShelfCreateRequest,
    service: ShelfService = Depends(get_shelf_service),
    user: User = Depends(get_current_user),
) -> ShelfResponse:
    """Put a book on one of the current user's shelves."""
    shelf, converted = await service.add_to_shelf(user.id, data)
    return ShelfResponse(
        id=shelf.id,
        user_id=shelf.user_id,
        book_id=shelf.book_id,
        status=shelf.status,
        rating=shelf.rating,
        recommendations_converted=converted,
    )
