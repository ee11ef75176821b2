"""
Structured output.

An agent with an ``output_type`` must answer with JSON matching that
pydantic model. Backends that support it receive the JSON schema with the
request; the runner validates the final answer either way.
"""

import re
from typing import Any

from pydantic import BaseModel, ValidationError

from agentrun.domain import OutputValidationError

# Models often wrap JSON in a markdown fence
_FENCE = re.compile(r"^\s*```(?:json)?\s*\n?(.*?)\n?\s*```\s*$", re.DOTALL)


def strip_code_fence(text: str) -> str:
    match = _FENCE.match(text)
    return match.group(1) if match else text.strip()


def output_schema(output_type: type[BaseModel]) -> dict[str, Any]:
    """JSON schema sent to backends that accept a response format."""
    return {
        "name": output_type.__name__,
        "schema": output_type.model_json_schema(),
    }


def parse_output(output_type: type[BaseModel], text: str) -> BaseModel:
    """
    Validate a final answer against ``output_type``.

    Raises:
        OutputValidationError: the text is not JSON or does not match the model
    """
    try:
        return output_type.model_validate_json(strip_code_fence(text))
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(p) for p in err["loc"]), "msg": err["msg"]}
            for err in e.errors(include_url=False)
        ]
        raise OutputValidationError(
            f"Output does not match {output_type.__name__}",
            output_type=output_type.__name__,
            errors=errors,
        ) from e


__all__ = ["output_schema", "parse_output", "strip_code_fence"]
