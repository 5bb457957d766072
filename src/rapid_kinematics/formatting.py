"""Number and literal formatting for RAPID source text."""

DECIMALS = 3
QUATERNION_DECIMALS = 6


def format_number(value, decimals: int = DECIMALS) -> str:
    """Round ``value`` to ``decimals`` places and trim trailing zeros.

    >>> format_number(500.0)
    '500'
    >>> format_number(123.456789)
    '123.457'
    """
    text = f"{float(value):.{decimals}f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    if text in ("-0", ""):
        text = "0"
    return text


def format_quaternion_component(value) -> str:
    return format_number(value, QUATERNION_DECIMALS)


def format_bool(value: bool) -> str:
    return "TRUE" if value else "FALSE"


def format_signal(value: bool) -> str:
    return "1" if value else "0"


def format_vector(values, decimals: int = DECIMALS) -> str:
    return "[" + ", ".join(format_number(v, decimals) for v in values) + "]"


def format_optional_time(keyword: str, value) -> str:
    """Optional argument like ``\\MaxTime:=5``, empty unless ``value`` is positive."""
    if value is None or float(value) <= 0:
        return ""
    return f"\\{keyword}:={format_number(value)}"
