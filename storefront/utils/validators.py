from typing import Optional


def ensure_positive_int(value, field: str) -> int:
    if value is None or int(value) <= 0:
        raise ValueError(f"{field} must be > 0")
    return int(value)


def normalize_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def is_pincode(value: Optional[str]) -> bool:
    return bool(value) and value.isdigit()


def validate_pincode_range(start: str, end: str) -> None:
    """Ranges compare as fixed-width strings, so both ends must share a width."""
    if not (is_pincode(start) and is_pincode(end)):
        raise ValueError("pincode range bounds must be numeric strings")
    if len(start) != len(end):
        raise ValueError("pincode range bounds must have the same width")
    if start > end:
        raise ValueError("pincode_start must be <= pincode_end")
