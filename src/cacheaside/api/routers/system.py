from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["system"])


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    return "pong"
