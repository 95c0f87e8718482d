"""Schema base class and field types shared across the API."""

from typing import Annotated

from pydantic import BaseModel, StringConstraints
from pydantic.alias_generators import to_camel

# MyKad number: 12 digits, no dashes
ICNumber = Annotated[str, StringConstraints(pattern=r"^[0-9]{12}$")]

SSMNumber = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1, max_length=50)]


class CamelModel(BaseModel):
    """Responses serialize as camelCase; requests accept either camelCase or snake_case."""

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "from_attributes": True,
    }


class HealthResponse(CamelModel):
    status: str = "ok"
    app: str
    env: str
    modules: dict[str, bool]
