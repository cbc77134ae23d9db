"""Last-digit extraction from the exact textual form of a quote."""

from typing import Union


class NoDigitFound(ValueError):
    """Raised when a raw quote contains no ASCII digit."""

    def __init__(self, raw_quote):
        super().__init__(f"No digit in quote {raw_quote!r}")
        self.raw_quote = raw_quote


def extract_last_digit(raw_quote: Union[str, int, float]) -> int:
    """
    Return the last decimal digit of a quote's textual form.

    The text is used verbatim: parsing to float first can change trailing
    digits (``"1234.50"`` would become ``1234.5``).

    Args:
        raw_quote: Quote exactly as received from the feed

    Returns:
        Digit 0-9

    Raises:
        NoDigitFound: If the text contains no ASCII digit

    Examples:
        >>> extract_last_digit("1234.50")
        0
        >>> extract_last_digit("-3")
        3
    """
    text = str(raw_quote).strip()
    for char in reversed(text):
        # str.isdigit() also accepts non-ASCII digits
        if "0" <= char <= "9":
            return ord(char) - ord("0")
    raise NoDigitFound(raw_quote)
