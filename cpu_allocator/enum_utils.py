"""Enum helpers shared by the allocation data model.

"""

import ast
import inspect
import textwrap
from enum import Enum
from enum import StrEnum as StrEnum  # pylint: disable=useless-import-alias
from typing import Any
from typing import cast
from typing import Dict
from typing import TypeVar

from pydantic.json_schema import JsonSchemaValue
from pydantic_core import CoreSchema


__all__ = ["StrEnum", "enum_docstrings"]

E = TypeVar("E", bound=Enum)


def _member_docstrings(enum: type[Enum]) -> Dict[str, str]:
    """Map member name -> the string literal directly below its assignment"""
    try:
        mod = ast.parse(textwrap.dedent(inspect.getsource(enum)))
    except (OSError, TypeError):
        # no source available, e.g. frozen or dynamically created enums
        return {}

    if not mod.body or not isinstance(class_def := mod.body[0], ast.ClassDef):
        return {}

    docs: Dict[str, str] = {}
    pending: str | None = None
    for node in class_def.body:
        match node:
            case ast.Assign(targets=[ast.Name(id=name)]) if name in enum.__members__:
                pending = name
                continue
            case ast.Expr(value=ast.Constant(value=str() as docstring)) if pending:
                docs[pending] = docstring
        pending = None
    return docs


def enum_docstrings(enum: type[E]) -> type[E]:
    """Attach PEP 257 attribute docstrings to enum members at runtime

    Example:
        @enum_docstrings
        class Size(StrEnum):
            \"\"\"Sizes\"\"\"

            small = "small"
            \"\"\"The smallest size\"\"\"

        Size.small.__doc__  # 'The smallest size'

    Members without a docstring keep inheriting the class docstring. The
    descriptions are also published through the pydantic JSON schema as a
    ``oneOf`` list so API consumers can see them.
    """
    for name, docstring in _member_docstrings(enum).items():
        enum[name].__doc__ = docstring

    def __get_pydantic_json_schema__(
        cls: type[E],
        core_schema: CoreSchema,
        handler: Any,
    ) -> JsonSchemaValue:
        json_schema = cast(JsonSchemaValue, handler(core_schema))
        json_schema["oneOf"] = [
            {
                "const": member.value,
                "title": member.name,
                "description": member.__doc__,
            }
            for member in cls
        ]
        return json_schema

    setattr(
        enum, "__get_pydantic_json_schema__", classmethod(__get_pydantic_json_schema__)
    )

    return enum
