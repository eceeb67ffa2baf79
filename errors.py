from enum import IntEnum
from typing import Optional


class ErrorCode(IntEnum):
    ACCOUNT_NOT_FOUND = 0
    ACCOUNT_BLOCKED = 1
    INSUFFICIENT_BALANCE = 2
    ACCOUNT_TYPE_MISMATCH = 3
    IBAN_MISMATCH = 4
    NEGATIVE_AMOUNT = 5
    INVALID_IBAN = 6
    ACCOUNT_CREATION_FAILED = 7
    SERIALIZATION_FAILED = 8
    MALFORMED_REQUEST = 9
    INVALID_AMOUNT = 10


class LedgerError(Exception):
    """Base exception for all ledger errors.

    Subclasses carry their ``ErrorCode`` as ``code``; any keyword arguments
    given at raise time are kept on ``context`` for logging.
    """

    code: ErrorCode
    message = "Ledger error"

    def __init__(self, message: Optional[str] = None, **context):
        super().__init__(message or self.message)
        self.context = context


class AccountNotFoundError(LedgerError):
    code = ErrorCode.ACCOUNT_NOT_FOUND
    message = "Requested account does not exist"


class AccountBlockedError(LedgerError):
    code = ErrorCode.ACCOUNT_BLOCKED
    message = "Account is blocked"


class InsufficientBalanceError(LedgerError):
    code = ErrorCode.INSUFFICIENT_BALANCE
    message = "Insufficient account balance"


class AccountTypeMismatchError(LedgerError):
    code = ErrorCode.ACCOUNT_TYPE_MISMATCH
    message = "Account has the wrong type"


class IbanMismatchError(LedgerError):
    """Stored account does not carry the IBAN it is keyed by."""

    code = ErrorCode.IBAN_MISMATCH
    message = "Account has the wrong IBAN"


class NegativeAmountError(LedgerError):
    code = ErrorCode.NEGATIVE_AMOUNT
    message = "Amount cannot be negative"


class InvalidAmountError(LedgerError):
    code = ErrorCode.INVALID_AMOUNT
    message = "Amount is not a finite number"


class InvalidIbanError(LedgerError):
    code = ErrorCode.INVALID_IBAN
    message = "IBAN is not valid"


class IbanGenerationExhaustedError(InvalidIbanError):
    """No valid, unused IBAN was found within the attempt ceiling."""

    message = "Unable to generate a valid unique IBAN"


class AccountCreationError(LedgerError):
    code = ErrorCode.ACCOUNT_CREATION_FAILED
    message = "Impossible to create account"


class SerializationError(LedgerError):
    code = ErrorCode.SERIALIZATION_FAILED
    message = "Cannot represent accounts as JSON"


class MalformedRequestError(LedgerError):
    code = ErrorCode.MALFORMED_REQUEST
    message = "Cannot parse JSON"
