from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel

from typechat.app.translation.service import to_jsonable

router = APIRouter(prefix="/translations", tags=["translations"])


class TranslateBody(BaseModel):
    request: str


@router.get("/status")
def get_translation_status(request: Request) -> dict[str, Any]:
    return request.app.state.translation_service.snapshot()


@router.get("/recent")
def get_recent_translations(
    request: Request,
    limit: int = Query(default=10, ge=1, le=50),
) -> dict[str, Any]:
    results = request.app.state.translation_service.recent(limit=limit)
    return {"results": results, "count": len(results)}


@router.get("/schema")
def get_translation_schema(request: Request) -> dict[str, Any]:
    translator = request.app.state.translation_service.translator
    return {"type_name": translator.type_name, "schema": translator.schema}


@router.post("/calendar")
async def translate_calendar_request(
    request: Request,
    body: TranslateBody,
) -> dict[str, Any]:
    text = body.request.strip()
    if not text:
        raise HTTPException(status_code=400, detail="request is required")

    result = await request.app.state.translation_service.translate(text)
    if result.ok:
        return {"ok": True, "value": to_jsonable(result.value)}
    return {"ok": False, "error": result.error}
