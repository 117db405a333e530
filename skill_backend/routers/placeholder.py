from fastapi import APIRouter
from fastapi.responses import PlainTextResponse


router = APIRouter(tags=["placeholder"])


@router.api_route(
    "/api/something",
    methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    response_class=PlainTextResponse,
    summary="Placeholder",
)
def something() -> str:
    return "Not sure what you expected to find here..."
