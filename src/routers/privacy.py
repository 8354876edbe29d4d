# src/routers/privacy.py
# РОУТЕР: настройки приватности (что видят участники общих групп)

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.user import User
from src.schemas.user import PrivacySettingsOut, UpdatePrivacySettingsRequest
from src.services.errors import AccountWorkflowError
from src.services import user_account
from src.utils.auth_dep import get_active_user

router = APIRouter()


@router.get("/", response_model=PrivacySettingsOut)
def get_privacy_settings(current_user: User = Depends(get_active_user)):
    return current_user


@router.put("/", response_model=PrivacySettingsOut)
def update_privacy_settings(
    payload: UpdatePrivacySettingsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_active_user),
):
    try:
        return user_account.update_privacy_settings(
            db,
            current_user.id,
            share_watches=payload.share_watches,
            share_ratings=payload.share_ratings,
            share_notes=payload.share_notes,
        )
    except AccountWorkflowError as e:
        raise HTTPException(status_code=e.status_code, detail=e.to_detail())
