from fastapi import APIRouter, Depends, status

from expiring_links.dependencies import get_link_service
from expiring_links.schemas.link import LinkCreate, LinkCreateResponse
from expiring_links.services.link_service import LinkService

router = APIRouter(prefix="/links", tags=["links"])


@router.post("/", response_model=LinkCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_link(
    link_data: LinkCreate,
    link_service: LinkService = Depends(get_link_service)
):
    """
    Create a new short link.

    Service errors (conflict, exhausted generation, backend failure) are
    mapped to HTTP responses by the handlers registered in main.py.
    """
    link = await link_service.create_link(
        original_url=str(link_data.original_url),
        custom_code=link_data.custom_code,
        duration_hours=link_data.duration,
    )
    return LinkCreateResponse(short_code=link.code, expires_at=link.expires_at)
