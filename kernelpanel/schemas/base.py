from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, ConfigDict
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

from kernelpanel.services.validation import ConfigValidationError, check_enum, check_json_text, check_port

# largest value an INTEGER column or OFFSET accepts on every supported backend
MAX_INT32 = 2**31 - 1


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


def as_pydantic_error(exc: ConfigValidationError) -> PydanticCustomError:
    error = exc.errors[0]
    context = {"value": error.value}
    if error.allowed is not None:
        context["allowed"] = list(error.allowed)
    return PydanticCustomError(error.code.value, error.message, context)


def _port(value: Any) -> int:
    try:
        return check_port(value)
    except ConfigValidationError as exc:
        raise as_pydantic_error(exc) from exc


def _json_text(value: Any) -> str:
    try:
        return check_json_text(value, "")
    except ConfigValidationError as exc:
        raise as_pydantic_error(exc) from exc


def one_of(*allowed: str) -> BeforeValidator:
    def _check(value: Any) -> str:
        if hasattr(value, "value"):
            value = value.value
        try:
            return check_enum(value, "", allowed)
        except ConfigValidationError as exc:
            raise as_pydantic_error(exc) from exc

    return BeforeValidator(_check)


Port = Annotated[int, BeforeValidator(_port)]
JsonText = Annotated[str, BeforeValidator(_json_text)]
