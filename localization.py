from enum import Enum

from accounts import AccountStatus
from errors import ErrorCode


class Locale(str, Enum):
    english = "en"
    russian = "ru"


_ERROR_TEMPLATES = {
    Locale.english: "Error code: {code}. Message: {message}",
    Locale.russian: "Код ошибки: {code}. Сообщение: {message}",
}

ERROR_MESSAGES = {
    ErrorCode.ACCOUNT_NOT_FOUND: {
        Locale.english: "Requested account does not exist",
        Locale.russian: "Запрашиваемый аккаунт не существует",
    },
    ErrorCode.ACCOUNT_BLOCKED: {
        Locale.english: "Account is blocked",
        Locale.russian: "Аккаунт заблокирован",
    },
    ErrorCode.INSUFFICIENT_BALANCE: {
        Locale.english: "Insufficient account balance",
        Locale.russian: "Недостаточно средств на балансе",
    },
    ErrorCode.ACCOUNT_TYPE_MISMATCH: {
        Locale.english: "Account has the wrong type",
        Locale.russian: "Некорректный тип аккаунта",
    },
    ErrorCode.IBAN_MISMATCH: {
        Locale.english: "Account has the wrong IBAN",
        Locale.russian: "Некорректный IBAN аккаунта",
    },
    ErrorCode.NEGATIVE_AMOUNT: {
        Locale.english: "Amount cannot be negative",
        Locale.russian: "Сумма не может быть отрицательной",
    },
    ErrorCode.INVALID_IBAN: {
        Locale.english: "IBAN is not valid",
        Locale.russian: "IBAN не является валидным",
    },
    ErrorCode.ACCOUNT_CREATION_FAILED: {
        Locale.english: "Impossible to create account",
        Locale.russian: "Невозможно создать аккаунт",
    },
    ErrorCode.SERIALIZATION_FAILED: {
        Locale.english: "Cannot represent accounts as JSON",
        Locale.russian: "Невозможно преобразовать аккаунты в JSON",
    },
    ErrorCode.MALFORMED_REQUEST: {
        Locale.english: "Cannot parse JSON",
        Locale.russian: "Невозможно обработать JSON",
    },
    ErrorCode.INVALID_AMOUNT: {
        Locale.english: "Amount is not a finite number",
        Locale.russian: "Сумма не является конечным числом",
    },
}

STATUS_LABELS = {
    AccountStatus.active: {
        Locale.english: "Active",
        Locale.russian: "Активный",
    },
    AccountStatus.blocked: {
        Locale.english: "Blocked",
        Locale.russian: "Заблокированный",
    },
}


def error_message(code: ErrorCode, locale: Locale = Locale.english) -> str:
    """Render the user-facing message for an error kind."""
    template = _ERROR_TEMPLATES[locale]
    return template.format(code=int(code), message=ERROR_MESSAGES[code][locale])


def status_label(status: AccountStatus, locale: Locale = Locale.english) -> str:
    return STATUS_LABELS[status][locale]
