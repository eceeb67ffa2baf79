"""IBAN validation and generation.

Identifiers are 28 characters long: a two-letter country prefix, two check
digits and a 24-digit account number. The checksum is mod-97 over the numeric
form of the identifier as written (letters become two digits, A=10 ... Z=35),
and an identifier is valid when that remainder equals 1.
"""
import random
from typing import Callable, Optional

from errors import IbanGenerationExhaustedError, InvalidIbanError

IBAN_LENGTH = 28
CHECK_DIGITS_PLACEHOLDER = "00"
DEFAULT_MAX_ATTEMPTS = 1_000_000


def normalize(iban: str) -> str:
    """Strip the whitespace IBANs are usually grouped with."""
    return "".join(iban.split())


def is_well_formed(iban: str) -> bool:
    """Check length and alphabet without looking at the checksum."""
    iban = normalize(iban)
    if len(iban) != IBAN_LENGTH:
        return False
    return all("A" <= char <= "Z" or "0" <= char <= "9" for char in iban)


def to_numeric(iban: str) -> str:
    """Convert an IBAN to the digit string used for mod-97 arithmetic."""
    digits = []
    for char in iban:
        if "A" <= char <= "Z":
            digits.append(str(ord(char) - ord("A") + 10))
        elif "0" <= char <= "9":
            digits.append(char)
        else:
            raise InvalidIbanError(f"Unexpected character {char!r} in IBAN", iban=iban)
    return "".join(digits)


def mod97(number: str) -> int:
    # Running remainder, so arbitrarily long inputs need constant space
    remainder = 0
    for digit in number:
        remainder = (remainder * 10 + int(digit)) % 97
    return remainder


def compute_check_digits(numeric: str) -> str:
    return f"{98 - mod97(numeric):02d}"


def is_valid(iban: str) -> bool:
    """Return True if ``iban`` is well formed and passes the mod-97 check.

    Never raises: anything malformed is simply invalid.
    """
    if not isinstance(iban, str):
        return False
    iban = normalize(iban)
    if not is_well_formed(iban):
        return False
    return mod97(to_numeric(iban)) == 1


class IbanGenerator:
    """Generates random, checksum-valid IBANs for a single country."""

    def __init__(
        self,
        country_prefix: str = "BY",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        rng: Optional[random.Random] = None,
    ):
        if len(country_prefix) != 2 or not country_prefix.isalpha() or not country_prefix.isupper():
            raise InvalidIbanError("Country prefix must be two uppercase letters", prefix=country_prefix)
        self.country_prefix = country_prefix
        self.max_attempts = max_attempts
        self.rng = rng or random.Random()

    def _random_digits(self, length: int) -> str:
        return "".join(str(self.rng.randrange(10)) for _ in range(length))

    def generate_candidate(self) -> str:
        """Build a candidate IBAN.

        Check digits are computed over the numeric form of the whole candidate
        with the placeholder in place, then spliced in. The result is not
        guaranteed to validate.
        """
        account_number = self._random_digits(IBAN_LENGTH - 4)
        candidate = self.country_prefix + CHECK_DIGITS_PLACEHOLDER + account_number
        check_digits = compute_check_digits(to_numeric(candidate))
        return self.country_prefix + check_digits + account_number

    def generate_unique(self, exists: Callable[[str], bool]) -> str:
        """Generate candidates until one is valid and ``exists`` rejects it.

        The caller must hold whatever lock guards ``exists`` until the returned
        IBAN has been stored, otherwise two callers can receive the same one.
        """
        for _ in range(self.max_attempts):
            candidate = self.generate_candidate()
            if is_valid(candidate) and not exists(candidate):
                return candidate
        raise IbanGenerationExhaustedError(attempts=self.max_attempts)
