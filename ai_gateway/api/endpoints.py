from fastapi import APIRouter, Request
from starlette.responses import Response

from ai_gateway.api.orchestrator.proxy_engine import ProxyEngine

router = APIRouter()


def get_proxy_engine(request: Request) -> ProxyEngine:
    """Return the engine built by the application lifespan."""
    return request.app.state.proxy_engine


async def proxy(request: Request) -> Response:
    return await get_proxy_engine(request).handle(request)


# A plain route with no method list so any verb, WebDAV and custom ones
# included, reaches the engine instead of Starlette's 405.
router.add_route("/{full_path:path}", proxy, methods=None, include_in_schema=False)
