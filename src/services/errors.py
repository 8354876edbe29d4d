# src/services/errors.py
# Ошибки сервисного слоя. Роутеры переводят их в HTTPException.

from __future__ import annotations

from typing import Any, Dict, List, Optional


class AccountWorkflowError(Exception):
    """
    Базовая ошибка бизнес-операций с аккаунтом и группами.

    code   : машинный код для фронта;
    errors : постатейный список проблем ({"group_id", "message"}), если есть.
    """

    code = "account_workflow_error"
    status_code = 400

    def __init__(self, message: str, *, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.message = message
        self.errors = list(errors or [])

    def to_detail(self) -> Dict[str, Any]:
        detail: Dict[str, Any] = {"code": self.code, "message": self.message}
        if self.errors:
            detail["errors"] = self.errors
        return detail


class ValidationError(AccountWorkflowError):
    """Пакет действий неполон или некорректен."""
    code = "validation_error"
    status_code = 422


class NotEligibleError(ValidationError):
    """Выбранный получатель владения больше не подходит: нужно перезапросить список."""
    code = "not_eligible"
    status_code = 409


class AuthorizationError(AccountWorkflowError):
    """Пользователь не владеет группой. Деталей о группе не раскрываем."""
    code = "forbidden"
    status_code = 403


class ConflictError(AccountWorkflowError):
    """Конкурентное изменение сделало пакет неактуальным."""
    code = "conflict"
    status_code = 409
