import json
from typing import Any, Dict, List, Type, TypeVar

from fastapi import Request
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from storefront.errors import ValidationError

M = TypeVar("M", bound=BaseModel)


def flatten_errors(errors: List[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Aplati les erreurs pydantic/FastAPI en {"champ.sous_champ": [messages]}.
    Les préfixes de localisation "body"/"query" sont retirés.
    """
    fields: Dict[str, List[str]] = {}
    for err in errors:
        loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
        key = ".".join(loc) or "_root"
        fields.setdefault(key, []).append(err.get("msg") or "Invalid value")
    return fields


async def read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return {}
    try:
        return json.loads(body)
    except ValueError:
        raise ValidationError("Invalid JSON payload")


def parse_model(model: Type[M], data: Any, message: str = "Invalid request body") -> M:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(message, fields=flatten_errors(e.errors()))
