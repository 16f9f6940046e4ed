"""Role landing pages served behind the route gate.

The gate middleware has already resolved the caller by the time these
handlers run and stored the resolution on ``request.state``.
"""

from fastapi import APIRouter, Request
from pydantic import BaseModel

from domain.services.route_gate import GATED_PREFIXES

router = APIRouter(tags=["pages"], include_in_schema=False)


class PageResponse(BaseModel):
    path: str
    role: str
    workspace_id: str | None


async def render_page(request: Request, path: str = "") -> PageResponse:
    resolution = request.state.resolution
    workspace_id = resolution.workspace_id
    return PageResponse(
        path=request.url.path,
        role=resolution.role.value,
        workspace_id=str(workspace_id) if workspace_id else None,
    )


for _prefix in GATED_PREFIXES:
    router.add_api_route(_prefix, render_page, methods=["GET"], response_model=PageResponse)
    router.add_api_route(
        _prefix + "/{path:path}", render_page, methods=["GET"], response_model=PageResponse
    )
