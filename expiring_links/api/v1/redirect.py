from fastapi import APIRouter, Depends, status
from fastapi.responses import RedirectResponse

from expiring_links.dependencies import get_link_service
from expiring_links.services.link_service import LinkService

router = APIRouter(tags=["redirect"])


@router.get("/{short_code}")
async def redirect_to_original_url(
    short_code: str,
    link_service: LinkService = Depends(get_link_service)
):
    """
    Redirect to the original URL.

    Always 302, an expired link must stop redirecting.
    Unknown or expired codes raise NotFoundError -> 404.
    """
    link = await link_service.get_link(short_code)
    return RedirectResponse(url=link.original_url, status_code=status.HTTP_302_FOUND)
