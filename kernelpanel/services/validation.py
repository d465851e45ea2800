"""Field-scoped validation errors and the primitive parsers shared by every form.

Parsers take the raw submitted value plus the wire name of the field and either
return the normalized value or raise ConfigValidationError with a single
ConfigError. Callers that validate several fields collect those errors instead
of stopping at the first one.
"""

import enum
import json
import math
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from typing import Any, Optional

MIN_PORT = 1
MAX_PORT = 65535

TRUE_STRINGS = {"true", "1", "on", "yes"}
FALSE_STRINGS = {"false", "0", "off", "no"}


class ErrorCode(str, enum.Enum):
    invalid_json = "invalid_json"
    port_out_of_range = "port_out_of_range"
    invalid_enum = "invalid_enum"
    missing_field = "missing_field"
    invalid_value = "invalid_value"


@dataclass(frozen=True)
class ConfigError:
    field: str
    code: ErrorCode
    message: str
    value: Any = None
    allowed: Optional[tuple] = None

    def to_dict(self) -> dict:
        data = {"field": self.field, "code": self.code.value, "message": self.message}
        if isinstance(self.value, float) and not math.isfinite(self.value):
            data["value"] = str(self.value)
        elif isinstance(self.value, (str, int, float, bool)):
            data["value"] = self.value
        if self.allowed is not None:
            data["allowed"] = list(self.allowed)
        return data


class ConfigValidationError(Exception):
    def __init__(self, errors: Sequence[ConfigError]) -> None:
        self.errors = list(errors)
        super().__init__("; ".join(f"{error.field}: {error.message}" for error in self.errors))

    @property
    def fields(self) -> list[str]:
        return [error.field for error in self.errors]


def invalid_json(field: str, value: Any = None) -> ConfigError:
    return ConfigError(field, ErrorCode.invalid_json, "must be valid JSON", value)


def port_out_of_range(field: str, value: Any) -> ConfigError:
    return ConfigError(field, ErrorCode.port_out_of_range, f"port must be between {MIN_PORT} and {MAX_PORT}", value)


def invalid_enum(field: str, value: Any, allowed: Iterable[str]) -> ConfigError:
    allowed = tuple(allowed)
    return ConfigError(field, ErrorCode.invalid_enum, f"must be one of: {', '.join(allowed)}", value, allowed)


def missing_field(field: str) -> ConfigError:
    return ConfigError(field, ErrorCode.missing_field, "field is required")


def invalid_value(field: str, message: str, value: Any = None) -> ConfigError:
    return ConfigError(field, ErrorCode.invalid_value, message, value)


def fail(error: ConfigError) -> None:
    raise ConfigValidationError([error])


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("booleans are not integers")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return int(value.strip())
    raise ValueError(f"not an integer: {value!r}")


def check_port(value: Any, field: str = "port") -> int:
    try:
        port = _to_int(value)
    except ValueError:
        fail(invalid_value(field, "port must be an integer", value))
    if not MIN_PORT <= port <= MAX_PORT:
        fail(port_out_of_range(field, port))
    return port


def check_number(value: Any, field: str, minimum: Optional[float] = None, maximum: Optional[float] = None) -> float:
    if isinstance(value, bool):
        fail(invalid_value(field, "must be a number", value))
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (TypeError, ValueError):
        fail(invalid_value(field, "must be a number", value))
    if not math.isfinite(number):
        fail(invalid_value(field, "must be a finite number", value))
    if minimum is not None and number < minimum:
        fail(invalid_value(field, f"must be at least {minimum:g}", number))
    if maximum is not None and number > maximum:
        fail(invalid_value(field, f"must be at most {maximum:g}", number))
    return number


def check_enum(value: Any, field: str, allowed: Sequence[str]) -> str:
    if not isinstance(value, str) or value not in allowed:
        fail(invalid_enum(field, value, allowed))
    return value


def check_text(value: Any, field: str, min_length: int = 0) -> str:
    if not isinstance(value, str):
        fail(invalid_value(field, "must be a string", value))
    text = value.strip()
    if len(text) < min_length:
        fail(invalid_value(field, f"must be at least {min_length} characters", value))
    return text


def parse_bool(value: Any, field: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in TRUE_STRINGS:
            return True
        if lowered in FALSE_STRINGS:
            return False
    fail(invalid_value(field, "must be a boolean", value))


def parse_json_value(value: Any, field: str, expect: Optional[type] = None) -> Any:
    """Decode JSON text; already decoded values pass through.

    Only syntax is checked. `expect` guards the outer container type so an
    array field cannot silently become an object.
    """
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError:
            fail(invalid_json(field, value))
    if expect is not None and not isinstance(value, expect):
        fail(invalid_value(field, f"must be a JSON {'array' if expect is list else 'object'}", value))
    return value


def check_json_text(value: Any, field: str) -> str:
    """Keep JSON text verbatim once it parses."""
    if not isinstance(value, str):
        return json.dumps(value)
    parse_json_value(value, field)
    return value


def parse_delimited_list(
    raw: Any,
    parser: Callable[[Any], Any] = str,
    predicate: Optional[Callable[[Any], bool]] = None,
) -> list:
    if raw is None:
        return []
    items = raw.split(",") if isinstance(raw, str) else list(raw)
    parsed_items = []
    for item in items:
        if isinstance(item, str):
            item = item.strip()
            if not item:
                continue
        try:
            parsed = parser(item)
        except (TypeError, ValueError):
            continue
        if predicate is not None and not predicate(parsed):
            continue
        parsed_items.append(parsed)
    return parsed_items


def join_list(values: Optional[Iterable[Any]]) -> str:
    return ", ".join(str(value) for value in values or [])


def parse_string_list(value: Any, field: str) -> list[str]:
    if not isinstance(value, (str, list, tuple)):
        fail(invalid_value(field, "must be a list or comma separated text", value))
    if not isinstance(value, str):
        # display joins items with ", "
        for item in value:
            if isinstance(item, str) and "," in item:
                fail(invalid_value(field, "list items cannot contain commas", item))
    return parse_delimited_list(value, str)


def parse_port_list(value: Any, field: str) -> list[int]:
    if not isinstance(value, (str, list, tuple)):
        fail(invalid_value(field, "must be a list or comma separated text", value))
    ports = parse_delimited_list(value, _to_int)
    for port in ports:
        if not MIN_PORT <= port <= MAX_PORT:
            fail(port_out_of_range(field, port))
    return ports


def parse_code_list(value: Any, field: str, allowed: Sequence[str]) -> list[str]:
    if not isinstance(value, (str, list, tuple)):
        fail(invalid_value(field, "must be a list or comma separated text", value))
    codes = parse_delimited_list(value, lambda item: str(item).upper())
    for code in codes:
        if code not in allowed:
            fail(invalid_enum(field, code, allowed))
    return codes


def errors_from_pydantic(errors: Iterable[dict]) -> list[ConfigError]:
    """Translate pydantic / FastAPI error dicts into ConfigErrors.

    Custom types raise PydanticCustomError with an ErrorCode value as the error
    type, so those keep their code; everything else maps onto the closest one.
    """
    translated = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "body"
        ctx = error.get("ctx") or {}
        error_type = error.get("type", "")
        if error_type in ErrorCode._value2member_map_:
            code = ErrorCode(error_type)
        elif error_type == "missing":
            code = ErrorCode.missing_field
        elif error_type in ("enum", "literal_error"):
            code = ErrorCode.invalid_enum
        elif error_type == "json_invalid":
            code = ErrorCode.invalid_json
        else:
            code = ErrorCode.invalid_value
        allowed = ctx.get("allowed")
        translated.append(
            ConfigError(
                field=field,
                code=code,
                message=error.get("msg", ""),
                value=ctx.get("value", error.get("input")),
                allowed=tuple(allowed) if allowed is not None else None,
            )
        )
    return translated
