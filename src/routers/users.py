# src/routers/users.py
# -----------------------------------------------------------------------------
# РОУТЕР: профиль и жизненный цикл аккаунта
# -----------------------------------------------------------------------------
# Ручки аккаунта доступны и деактивированным пользователям (get_current_user),
# иначе им нечем было бы реактивироваться.

from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from src.db import get_db
from src.models.user import User
from src.schemas.group_transfer import GroupTransferEligibility, ManageGroupsRequest, MessageOut
from src.schemas.user import ChangePasswordRequest, DeleteAccountRequest, UpdateProfileRequest, UserOut
from src.services.errors import AccountWorkflowError
from src.services import user_account
from src.services.group_transfer import get_created_groups_with_eligibility
from src.services.user_export import export_user_data
from src.utils.auth_dep import get_current_user

router = APIRouter()


def _raise_http(e: AccountWorkflowError):
    raise HTTPException(status_code=e.status_code, detail=e.to_detail())


@router.get("/profile", response_model=UserOut)
def get_profile(current_user: User = Depends(get_current_user)):
    return current_user


@router.put("/profile", response_model=UserOut)
def update_profile(
    payload: UpdateProfileRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        return user_account.update_profile(
            db,
            current_user.id,
            username=payload.username,
            email=payload.email,
            bio=payload.bio,
        )
    except AccountWorkflowError as e:
        _raise_http(e)


@router.put("/password", response_model=MessageOut)
def change_password(
    payload: ChangePasswordRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    if payload.new_password != payload.confirm_password:
        raise HTTPException(
            status_code=400,
            detail={"code": "password_mismatch", "message": "New password and confirmation do not match"},
        )
    try:
        user_account.change_password(
            db,
            current_user.id,
            current_password=payload.current_password,
            new_password=payload.new_password,
        )
    except AccountWorkflowError as e:
        _raise_http(e)
    return {"message": "Password changed successfully"}


# ===== Группы перед удалением =================================================

@router.get("/groups/created", response_model=List[GroupTransferEligibility])
def get_created_groups(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Свои группы и кандидаты на владение. Группы с auto_delete=true решения не требуют.
    """
    return get_created_groups_with_eligibility(db, current_user.id)


@router.post("/groups/manage", response_model=MessageOut)
def manage_groups(
    payload: ManageGroupsRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Принимает решения (delete|transfer) по всем своим группам. Пакет проверяется
    целиком и сохраняется; применяется при удалении аккаунта.
    """
    try:
        user_account.stage_group_actions(db, current_user.id, payload.group_actions)
    except AccountWorkflowError as e:
        _raise_http(e)
    return {"message": "Groups managed successfully"}


# ===== Жизненный цикл =========================================================

@router.delete("/account", response_model=MessageOut)
def delete_account(
    payload: DeleteAccountRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        user_account.delete_account(db, current_user.id, payload.password)
    except AccountWorkflowError as e:
        _raise_http(e)
    return {"message": "Account deleted successfully"}


@router.post("/deactivate", response_model=MessageOut)
def deactivate(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        user_account.deactivate_account(db, current_user.id)
    except AccountWorkflowError as e:
        _raise_http(e)
    return {"message": "Account deactivated successfully. You can reactivate anytime by logging in."}


@router.post("/reactivate", response_model=MessageOut)
def reactivate(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        user_account.reactivate_account(db, current_user.id)
    except AccountWorkflowError as e:
        _raise_http(e)
    return {"message": "Account reactivated successfully. Pending group actions cleared."}


# ===== Выгрузка данных ========================================================

@router.get("/export")
def export_data(
    fmt: str = Query("json", alias="format", pattern="^(json|csv)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    """
    Все данные пользователя: json-документ или zip с csv-файлами.
    Доступно и деактивированным: перед удалением аккаунта данные можно забрать.
    """
    try:
        content, media_type, filename = export_user_data(db, current_user.id, fmt)
    except AccountWorkflowError as e:
        _raise_http(e)
    return Response(
        content=content,
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
