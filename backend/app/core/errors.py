"""
Типизированные ошибки бизнес-логики.

Сервисы бросают эти исключения, роутеры их не ловят —
обработчик в main.py превращает их в JSON-ответ с нужным статусом.
"""


class DomainError(Exception):
    status_code = 400
    code = "error"
    retryable = False

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class ValidationError(DomainError):
    """Некорректные или отсутствующие входные данные"""
    status_code = 400
    code = "validation_error"


class NotFound(DomainError):
    status_code = 404
    code = "not_found"


class Forbidden(DomainError):
    status_code = 403
    code = "forbidden"


class InvalidTransition(DomainError):
    """Операция недопустима из текущего статуса"""
    status_code = 409
    code = "invalid_transition"


class ConflictError(DomainError):
    """Запись изменилась между чтением и записью, нужно перечитать и повторить"""
    status_code = 409
    code = "conflict"
    retryable = True


class StoreUnavailable(DomainError):
    """Хранилище недоступно (таймаут, блокировка, обрыв соединения)"""
    status_code = 503
    code = "store_unavailable"
    retryable = True


class PaymentError(DomainError):
    status_code = 502
    code = "payment_error"
    retryable = True


class PromotionRejected(DomainError):
    """Промокод отклонён при оформлении заказа; code = причина"""
    status_code = 400

    def __init__(self, reason: str, message: str = ""):
        self.code = reason
        super().__init__(message or f"Promotion rejected: {reason}")
        self.reason = reason

