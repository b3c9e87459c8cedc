"""
==========================================
Parameter binding.
==========================================

Resolves column values into named, typed parameter bindings.

Column-derived parameters are named :_<column>; the WHERE shorthand uses
:__<column><ordinal> (see querybuilder.where). Binding into a params map is
last-write-wins: a second binding under the same name silently replaces
the first.

Value shapes handled by resolve_column():

    RawValue('NOW()')          -> expression 'NOW()', no parameter
    Typed(1, ParamType.BOOL)   -> ':_col' bound as BOOL
    None                       -> ':_col' bound as NULL
    anything else              -> ':_col' typed from the table schema
                                  (STRING when unknown); date/time values
                                  are formatted for date, datetime and
                                  timestamp columns
"""

import re
from datetime import date, datetime, timezone
from typing import Any, Dict, Mapping, MutableMapping, NamedTuple, Optional, Tuple, Union

from querybuilder.schema import TableSchema
from querybuilder.types import ParamType, RawValue, as_typed

_NON_WORD = re.compile(r'\W')


class Binding(NamedTuple):
    """A bound parameter value with its binding type."""

    value: Any
    param_type: ParamType


def param_name(column: str) -> str:
    """Placeholder-safe form of a column name (backticks removed)."""
    return _NON_WORD.sub('_', column.replace('`', ''))


def column_param_name(column: str) -> str:
    return f":_{param_name(column)}"


def bind_param(
    params: MutableMapping[str, Binding],
    name: str,
    value: Any,
    param_type: Union[ParamType, str]
) -> None:
    """Store (value, type) under name, replacing any previous binding."""
    params[name] = Binding(value, ParamType.coerce(param_type))


def bind_params(params: MutableMapping[str, Binding], bindings: Mapping[str, Tuple[Any, Any]]) -> None:
    """Apply bind_param() for each name -> (value, type) entry."""
    for name, (value, param_type) in bindings.items():
        bind_param(params, name, value, param_type)


def format_temporal(value: Any, declared_type: str) -> Any:
    """
    Format date/datetime values for date, datetime and timestamp columns.

    timestamp values are converted to UTC first; naive datetimes are taken
    as local time. Other values and column types are returned unchanged.
    """
    if declared_type == 'date' and isinstance(value, date):
        return value.strftime('%Y-%m-%d')
    if declared_type == 'datetime' and isinstance(value, datetime):
        return value.strftime('%Y-%m-%d %H:%M:%S')
    if declared_type == 'timestamp' and isinstance(value, datetime):
        return value.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M:%S')
    return value


def resolve_column(
    column: str,
    value: Any,
    schema: Optional[TableSchema]
) -> Tuple[str, Optional[Tuple[str, Binding]]]:
    """
    Resolve a column value into its SQL expression and optional binding.

    Args:
        column: Column name as written in the statement
        value: RawValue, Typed pair, or plain value
        schema: Schema of the statement's table, or None

    Returns:
        Tuple of (rendered expression, (param name, Binding) or None)
    """
    if isinstance(value, RawValue):
        return value.get(), None

    name = column_param_name(column)

    typed = as_typed(value)
    if typed is not None:
        return name, (name, Binding(typed.value, typed.param_type))

    if value is None:
        return name, (name, Binding(None, ParamType.NULL))

    info = schema.column(column) if schema is not None else None
    if info is None:
        return name, (name, Binding(value, ParamType.STRING))

    return name, (name, Binding(format_temporal(value, info.declared_type), info.param_type))


def params_as_dict(params: Mapping[str, Binding]) -> Dict[str, Tuple[Any, ParamType]]:
    """Plain {name: (value, type)} copy of a params map."""
    return {name: (binding.value, binding.param_type) for name, binding in params.items()}
