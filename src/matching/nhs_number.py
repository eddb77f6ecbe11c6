"""
NHS number checksum validation (Modulus 11).

The first nine digits are weighted 10 down to 2 and summed. The check digit
is ``11 - (sum % 11)``, with 11 treated as 0. A computed check digit of 10
means no valid NHS number uses those nine digits.
"""

NHS_NUMBER_LENGTH = 10

_WEIGHTS = (10, 9, 8, 7, 6, 5, 4, 3, 2)


def expected_check_digit(nhs_number: str) -> int:
    """
    Compute the check digit for the first nine digits of ``nhs_number``.

    Returns:
        The expected check digit, in the range 0-10

    Raises:
        ValueError: If the first nine characters are not digits
    """
    total = sum(int(digit) * weight for digit, weight in zip(nhs_number[:9], _WEIGHTS))
    remainder = total % 11
    return 0 if remainder == 0 else 11 - remainder


def is_valid_nhs_number(nhs_number: str | None) -> bool:
    """Check length, digits and Modulus 11 check digit."""
    if not nhs_number or len(nhs_number) != NHS_NUMBER_LENGTH:
        return False
    if not (nhs_number.isascii() and nhs_number.isdigit()):
        return False

    check_digit = expected_check_digit(nhs_number)
    if check_digit == 10:
        return False
    return check_digit == int(nhs_number[-1])
