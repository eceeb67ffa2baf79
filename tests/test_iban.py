import pytest
import random

from errors import IbanGenerationExhaustedError, InvalidIbanError
from iban import (
    IBAN_LENGTH,
    IbanGenerator,
    compute_check_digits,
    is_valid,
    is_well_formed,
    mod97,
    normalize,
    to_numeric,
)


@pytest.fixture
def generator():
    return IbanGenerator(country_prefix="BY", rng=random.Random(1234))


@pytest.fixture
def valid_iban(generator):
    return generator.generate_unique(lambda iban: False)


class TestNumericForm:
    """Test conversion and mod-97 arithmetic."""

    def test_letters_become_two_digits(self):
        assert to_numeric("AZ09") == "103509"
        assert to_numeric("BY") == "1134"

    def test_invalid_character_raises(self):
        with pytest.raises(InvalidIbanError):
            to_numeric("BY84-ALFA")

    def test_lowercase_is_rejected(self):
        with pytest.raises(InvalidIbanError):
            to_numeric("by84")

    def test_mod97_matches_integer_arithmetic(self):
        number = "113400" + "1234567890" * 5
        assert mod97(number) == int(number) % 97

    def test_mod97_of_empty_string(self):
        assert mod97("") == 0

    def test_check_digits_are_zero_padded(self):
        assert compute_check_digits("96") == "02"
        assert compute_check_digits("97") == "98"
        assert compute_check_digits("1") == "97"


class TestValidation:
    """Test IBAN validation."""

    def test_generated_iban_is_valid(self, valid_iban):
        assert is_valid(valid_iban)
        assert len(valid_iban) == IBAN_LENGTH
        assert valid_iban.startswith("BY")

    def test_grouped_iban_is_valid(self, valid_iban):
        grouped = " ".join(valid_iban[i:i + 4] for i in range(0, IBAN_LENGTH, 4))
        assert is_valid(grouped)
        assert normalize(grouped) == valid_iban

    def test_single_digit_change_is_detected(self, valid_iban):
        last = valid_iban[-1]
        changed = valid_iban[:-1] + ("1" if last == "0" else "0")
        assert not is_valid(changed)

    def test_wrong_length_is_invalid(self, valid_iban):
        assert not is_valid(valid_iban[:-1])
        assert not is_valid(valid_iban + "0")
        assert not is_valid("")

    def test_invalid_characters_do_not_raise(self, valid_iban):
        assert not is_valid(valid_iban[:-1] + "!")
        assert not is_valid(valid_iban.lower())

    def test_non_string_is_invalid(self):
        assert not is_valid(None)
        assert not is_valid(1234)

    def test_well_formed_ignores_checksum(self):
        assert is_well_formed("BY84 ALFA 1000 0000 0000 0000 0000")
        assert not is_well_formed("BY84 ALFA 1000")
        assert not is_well_formed("BY84 alfa 1000 0000 0000 0000 0000")


class TestGeneration:
    """Test candidate and unique IBAN generation."""

    def test_candidate_shape(self, generator):
        candidate = generator.generate_candidate()
        assert len(candidate) == IBAN_LENGTH
        assert candidate[:2] == "BY"
        assert candidate[2:].isdigit()

    def test_candidate_check_digits_use_placeholder(self, generator):
        candidate = generator.generate_candidate()
        placeholder_form = candidate[:2] + "00" + candidate[4:]
        assert candidate[2:4] == compute_check_digits(to_numeric(placeholder_form))

    def test_unique_skips_existing(self):
        first = IbanGenerator(rng=random.Random(7)).generate_unique(lambda iban: False)
        # Same seed reproduces the same sequence, so the first hit must be skipped
        second = IbanGenerator(rng=random.Random(7)).generate_unique(lambda iban: iban == first)
        assert second != first
        assert is_valid(second)

    def test_generated_ibans_are_valid(self, generator):
        seen = set()
        for _ in range(20):
            iban = generator.generate_unique(seen.__contains__)
            assert is_valid(iban)
            seen.add(iban)
        assert len(seen) == 20

    def test_exhaustion_raises(self):
        generator = IbanGenerator(max_attempts=5, rng=random.Random(1))
        with pytest.raises(IbanGenerationExhaustedError):
            generator.generate_unique(lambda iban: True)

    def test_zero_attempts_raises_immediately(self):
        generator = IbanGenerator(max_attempts=0)
        with pytest.raises(IbanGenerationExhaustedError) as exc_info:
            generator.generate_unique(lambda iban: False)
        assert isinstance(exc_info.value, InvalidIbanError)

    def test_other_country_prefix(self):
        generator = IbanGenerator(country_prefix="DE", rng=random.Random(3))
        iban = generator.generate_unique(lambda iban: False)
        assert iban.startswith("DE")
        assert is_valid(iban)

    @pytest.mark.parametrize("prefix", ["by", "B", "BYX", "B1"])
    def test_invalid_country_prefix(self, prefix):
        with pytest.raises(InvalidIbanError):
            IbanGenerator(country_prefix=prefix)
