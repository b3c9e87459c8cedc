"""
==========================================
Value markers and enumerations.
==========================================

Small building blocks shared by every layer of the builder:

- ParamType: coarse binding type attached to each bound value
- Operation: the statement kinds the compiler knows how to render
- RawValue: SQL text spliced verbatim, bypassing parameter binding
- Typed: a value bound with an explicit ParamType

Column values passed to add_column() and match() are one of three shapes:
a RawValue, a Typed pair, or any other value whose type is inferred from
the table schema.

Example:
    >>> from querybuilder.types import ParamType, RawValue, Typed
    >>>
    >>> qb.insert('users', {
    ...     'name': 'Ada',
    ...     'created_at': RawValue('CURRENT_TIMESTAMP'),
    ...     'active': Typed(1, ParamType.BOOL),
    ... })
"""

from enum import Enum
from typing import Any, NamedTuple, Union


class ParamType(str, Enum):
    """Binding type handed to the driver with every parameter."""

    NULL = 'null'
    BOOL = 'bool'
    INT = 'int'
    STRING = 'str'

    @classmethod
    def coerce(cls, value: Union['ParamType', str]) -> 'ParamType':
        """Accept a ParamType or its string form ('null', 'bool', 'int', 'str')."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).lower())
        except ValueError:
            raise ValueError(f"Unknown parameter type: {value!r}") from None


_PARAM_TYPE_NAMES = frozenset(member.value for member in ParamType)


class Operation(str, Enum):
    """Statement kinds, valued by the SQL keyword that starts them."""

    SELECT = 'SELECT'
    SELECT_DISTINCT = 'SELECT DISTINCT'
    INSERT = 'INSERT'
    INSERT_IGNORE = 'INSERT IGNORE'
    REPLACE = 'REPLACE'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'
    QUERY = 'QUERY'


class RawValue:
    """SQL text inserted into the statement exactly as given.

    Args:
        definition: SQL fragment, e.g. 'NOW()' or 'counter + 1'
    """

    __slots__ = ('definition',)

    def __init__(self, definition: str):
        self.definition = definition

    def get(self) -> str:
        return self.definition

    def __str__(self) -> str:
        return self.definition

    def __repr__(self) -> str:
        return f"RawValue({self.definition!r})"

    def __eq__(self, other):
        return isinstance(other, RawValue) and other.definition == self.definition

    def __hash__(self):
        return hash(('RawValue', self.definition))


class Typed(NamedTuple):
    """A value bound with an explicit parameter type."""

    value: Any
    param_type: ParamType


def as_typed(value: Any) -> Union[Typed, None]:
    """Return value as a Typed pair when it is one, otherwise None.

    Plain (value, type) 2-tuples are accepted as Typed pairs when the type
    is a ParamType or one of its string forms ('int', 'str', ...); any
    other tuple is an ordinary value.
    """
    if isinstance(value, Typed):
        return Typed(value.value, ParamType.coerce(value.param_type))
    if isinstance(value, tuple) and len(value) == 2:
        if isinstance(value[1], ParamType):
            return Typed(value[0], value[1])
        if isinstance(value[1], str) and value[1].lower() in _PARAM_TYPE_NAMES:
            return Typed(value[0], ParamType.coerce(value[1]))
    return None
