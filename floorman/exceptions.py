"""
Exceptions for Floorman.

All errors are FloorError with a structured code for programmatic handling.
The subclasses name the recovery class of the failure:

    ScanValidationError  malformed code, returned as a rejection
    NotFound             unresolved code, returned as a rejection with hints
    PolicyViolation      raised; caller re-invokes with explicit confirmation
    ConcurrencyGuard     scanner bounce, absorbed (previous result returned)
    DataUnavailable      raised; no source could provide the document
"""

from typing import Any


class BaseError(Exception):
    """
    Exception carrying a code, a message and free-form context data.

    The message falls back to the class-level _default_messages entry for
    the code; any keyword argument ends up in data.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data: Any):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(self.message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.code!r}, {self.message!r})"


class FloorError(BaseError):
    """
    Structured exception for scan reconciliation.

    Usage:
        try:
            session.scan('4601234567890')
        except PolicyViolation as e:
            if e.code == 'PLAN_EXCEEDED':
                ask_operator(e.data['plan'])

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'EMPTY_CODE': 'Пустой код сканирования',
        'INVALID_QUANTITY': 'Количество не может быть отрицательным',
        'INVALID_SCOPE': 'Неверные параметры документа',
        'UNEXPECTED_CELL': 'Ячейки в этом документе не используются',
        'CODE_NOT_FOUND': 'Товар не числится в документе',
        'LINE_NOT_FOUND': 'Строка документа не найдена',
        'SCAN_CELL_FIRST': 'Сначала отсканируйте ячейку',
        'PLAN_EXCEEDED': 'План выполнен, требуется подтверждение излишка',
        'WRONG_CELL': 'Неверная ячейка',
        'WRONG_CELL_PRODUCT': 'Товар не относится к текущей ячейке',
        'NO_ACTIVE_STEP': 'Маршрут завершён',
        'DOCUMENT_COMPLETED': 'Документ уже завершён',
        'DUPLICATE_SCAN': 'Повторное сканирование проигнорировано',
        'DOCUMENT_UNAVAILABLE': 'Документ не найден ни локально, ни на сервере, ни в демо-данных',
        'SOURCE_FAILED': 'Источник данных недоступен',
    }

    @property
    def hints(self) -> list[str]:
        """Shortcut for data['hints'] (pending product names)."""
        return self.data.get('hints', [])

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': dict(self.data),
        }


class ScanValidationError(FloorError):
    """Malformed scan input."""


class NotFound(FloorError):
    """Scanned code does not resolve within the active scope."""


class PolicyViolation(FloorError):
    """Operation breaks the document-type policy without confirmation."""


class ConcurrencyGuard(FloorError):
    """Duplicate input from a scanner bounce or a double tap."""


class DataUnavailable(FloorError):
    """No normalized source could provide the document."""


class SourceError(FloorError):
    """A single plan source failed; the load chain moves to the next one."""
