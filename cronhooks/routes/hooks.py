from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from ..config import Settings
from ..models import HookCreateRequest, HookDeleteResponse, HookListResponse, HookUpdateRequest
from ..services.auth import verify_api_token
from ..services.hooks import HookRecord, HookService


def get_hook_service(request: Request) -> HookService:
    return request.app.state.hook_service


# Enforce the bearer token only when one is configured
def require_api_token(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> None:
    settings: Settings = request.app.state.settings
    if not settings.auth_enabled:
        return
    if not verify_api_token(authorization, settings.api_token or ""):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API token",
            headers={"WWW-Authenticate": "Bearer"},
        )


router = APIRouter(prefix="/hooks", tags=["hooks"], dependencies=[Depends(require_api_token)])


@router.post("", response_model=HookRecord, status_code=status.HTTP_201_CREATED)
def create_hook(
    payload: HookCreateRequest,
    service: HookService = Depends(get_hook_service),
) -> HookRecord:
    return service.create_hook(name=payload.name, url=payload.url, schedule=payload.schedule)


@router.get("", response_model=HookListResponse)
def list_hooks(service: HookService = Depends(get_hook_service)) -> HookListResponse:
    return HookListResponse(hooks=service.list_hooks())


@router.get("/{hook_id}", response_model=HookRecord)
def get_hook(hook_id: str, service: HookService = Depends(get_hook_service)) -> HookRecord:
    hook = service.get_hook(hook_id)
    if hook is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hook not found")
    return hook


@router.put("/{hook_id}", response_model=HookRecord)
# Partial update: omitted fields keep their stored values
def update_hook(
    hook_id: str,
    payload: HookUpdateRequest,
    service: HookService = Depends(get_hook_service),
) -> HookRecord:
    updated = service.update_hook(
        hook_id,
        name=payload.name,
        url=payload.url,
        schedule=payload.schedule,
    )
    if updated is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hook not found")
    return updated


@router.delete("/{hook_id}", response_model=HookDeleteResponse)
def delete_hook(hook_id: str, service: HookService = Depends(get_hook_service)) -> HookDeleteResponse:
    if not service.delete_hook(hook_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Hook not found")
    return HookDeleteResponse(id=hook_id)


__all__ = ["router"]
