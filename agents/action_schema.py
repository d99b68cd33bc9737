"""Function-tool definitions for the financial actions."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Union, get_args, get_origin

from schemas.actions import ACTION_MODELS, ActionKind
from schemas.ledger import Category

CATEGORY_FIELDS = {"category", "match_category", "new_category"}


def _unwrap_optional(annotation: Any) -> Any:
    if get_origin(annotation) is Union:
        args = [arg for arg in get_args(annotation) if arg is not type(None)]
        if len(args) == 1:
            return args[0]
    return annotation


def _property_schema(name: str, annotation: Any, description: str = None) -> Dict[str, Any]:
    annotation = _unwrap_optional(annotation)

    if isinstance(annotation, type) and issubclass(annotation, Enum):
        schema = {"type": "string", "enum": [member.value for member in annotation]}
    elif annotation is bool:
        schema = {"type": "boolean"}
    elif annotation is int:
        schema = {"type": "integer"}
    elif annotation is float:
        schema = {"type": "number"}
    elif annotation is datetime:
        schema = {"type": "string", "format": "date-time"}
    else:
        schema = {"type": "string"}

    if name in CATEGORY_FIELDS:
        categories = ", ".join(category.value for category in Category)
        description = f"{description or 'Category'}. One of: {categories}"
    if description:
        schema["description"] = description
    return schema


def action_tool_definition(kind: ActionKind, model: type) -> Dict:
    """Get OpenAI-compatible tool definition for one action model."""
    properties = {}
    required = []

    for name, field in model.model_fields.items():
        if name == "action":
            continue
        properties[name] = _property_schema(name, field.annotation, field.description)
        if field.is_required():
            required.append(name)

    return {
        "type": "function",
        "function": {
            "name": kind.value,
            "description": (model.__doc__ or kind.value).strip(),
            "parameters": {
                "type": "object",
                "properties": properties,
                "required": required
            }
        }
    }


def get_action_tools() -> List[Dict]:
    """Tool definitions for every action, in ActionKind order."""
    return [action_tool_definition(kind, model) for kind, model in ACTION_MODELS.items()]
