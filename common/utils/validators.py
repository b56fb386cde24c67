from typing import Any, Dict, Iterable, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

from ..services.errors import InvalidArgumentError


_PRIMITIVES = (str, int, float, bool)

# upper bound for a single cart line
MAX_QUANTITY = 9999


def parse_quantity(value: Any, *, default: Optional[int] = None) -> int:
    """Coerce a client-supplied quantity to int, rejecting anything outside 1..MAX_QUANTITY."""

    if value is None or value == "":
        if default is None:
            raise InvalidArgumentError("Thiếu số lượng")
        return default
    if isinstance(value, bool):
        raise InvalidArgumentError("Số lượng không hợp lệ")
    try:
        qty = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError("Số lượng không hợp lệ") from None
    if isinstance(value, float) and qty != value:
        raise InvalidArgumentError("Số lượng không hợp lệ")
    if qty < 1:
        raise InvalidArgumentError("Số lượng phải lớn hơn 0")
    if qty > MAX_QUANTITY:
        raise InvalidArgumentError(f"Số lượng tối đa là {MAX_QUANTITY}")
    return qty


def validate_options(options: Any) -> Optional[Dict[str, Any]]:
    """Cart item options are a flat map of string keys to primitive values."""

    if options is None:
        return None
    if not isinstance(options, Mapping):
        raise InvalidArgumentError("Tùy chọn sản phẩm không hợp lệ")
    cleaned = {}
    for key, value in options.items():
        if not isinstance(key, str) or not key.strip():
            raise InvalidArgumentError("Tùy chọn sản phẩm không hợp lệ")
        if value is not None and not isinstance(value, _PRIMITIVES):
            raise InvalidArgumentError(f"Giá trị tùy chọn '{key}' không hợp lệ")
        cleaned[key.strip()] = value
    return cleaned or None


def require_fields(data: Mapping[str, Any], fields: Iterable[str], message: str) -> Dict[str, str]:
    """Return the stripped string values of ``fields``; raise if any is blank."""

    out = {}
    for field in fields:
        value = data.get(field)
        value = str(value).strip() if value is not None else ""
        if not value:
            raise InvalidArgumentError(message)
        out[field] = value
    return out


def optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def parse_email(value: Any) -> str:
    """Normalised address; syntax only, no DNS lookup."""

    raw = optional_str(value)
    if not raw:
        raise InvalidArgumentError("Email là bắt buộc")
    try:
        return validate_email(raw, check_deliverability=False).normalized
    except EmailNotValidError:
        raise InvalidArgumentError("Email không hợp lệ") from None


def parse_int(value: Any, field: str, *, default: int = 0, low: Optional[int] = None, high: Optional[int] = None) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise InvalidArgumentError(f"{field} không hợp lệ")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise InvalidArgumentError(f"{field} không hợp lệ") from None
    if (low is not None and number < low) or (high is not None and number > high):
        raise InvalidArgumentError(f"{field} không hợp lệ")
    return number
