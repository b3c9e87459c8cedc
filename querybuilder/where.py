"""
==========================================
WHERE expression engine.
==========================================

Two independent pieces:

Tree renderer
    A WHERE (or HAVING) expression is a Group: an ordered list of sibling
    nodes where Operator tokens sit between Condition leaves and nested
    Groups. Rendering rules:

        Condition('a = 1')                      -> (a = 1)
        Group([A, AND, B])                      -> (A) AND (B)
        Group([OR, A])                          -> (A)          leading operator dropped
        Group([A, AND, Group([B, OR, C])])      -> (A) AND ((B) OR (C))
        Group([A, B])                           -> (A)(B)       no implicit operator

    build_node() converts the public input shapes (strings and nested
    lists/tuples, with 'AND'/'OR'/'XOR'/'&&'/'||' strings as operator tokens)
    into nodes.

match() shorthand compiler
    compile_match() turns terse condition tuples into Condition nodes with
    bound parameters named :__<column><ordinal>, typing each parameter from
    the table schema.

Example:
    >>> render(build_node(['a = 1', 'AND', ['b = 2', 'OR', 'c = 3']]))
    '(a = 1) AND ((b = 2) OR (c = 3))'
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from querybuilder.binder import Binding, param_name
from querybuilder.schema import SchemaUnavailableError, TableSchema
from querybuilder.types import ParamType, RawValue

logger = logging.getLogger(__name__)

OPERATOR_TOKENS = ('and', '&&', 'or', '||', 'xor')

# Operators that turn a null comparison into IS NOT NULL
NEGATED_OPERATORS = ('<>', '!=', 'is not')

MISSING = object()


class NoActiveTableError(Exception):
    """Exception raised by match() in strict mode when no table has been selected."""
    pass


@dataclass(frozen=True)
class Condition:
    """A leaf condition, rendered wrapped in parentheses."""

    text: str


@dataclass(frozen=True)
class Operator:
    """A boolean operator token placed between siblings."""

    token: str


@dataclass
class Group:
    """An ordered list of sibling nodes; parenthesized when nested."""

    items: List[Union[Condition, Operator, 'Group']] = field(default_factory=list)

    def append(self, node: Union[Condition, Operator, 'Group']) -> None:
        self.items.append(node)

    def extend(self, nodes) -> None:
        self.items.extend(nodes)

    def __bool__(self) -> bool:
        return bool(self.items)

    def __len__(self) -> int:
        return len(self.items)


Node = Union[Condition, Operator, Group]


def is_operator_token(value: Any) -> bool:
    return isinstance(value, str) and value.strip().lower() in OPERATOR_TOKENS


def build_node(expression: Any) -> Node:
    """
    Convert a condition expression into a tree node.

    Args:
        expression: A condition string, an operator string, an existing node,
            or a list/tuple of any of these (becomes a Group)

    Returns:
        Condition, Operator or Group
    """
    if isinstance(expression, (Condition, Operator, Group)):
        return expression
    if isinstance(expression, str):
        if is_operator_token(expression):
            return Operator(expression.strip())
        return Condition(expression)
    if isinstance(expression, (list, tuple)):
        return Group([build_node(item) for item in expression])
    raise TypeError(f"Unsupported condition expression: {expression!r}")


def render(node: Node) -> str:
    """Render a node to SQL text (a bare Operator renders as an empty string)."""
    if isinstance(node, Condition):
        return f"({node.text})"
    if isinstance(node, Operator):
        return ''
    return _render_group(node)


def _render_group(group: Group) -> str:
    parts = []
    for position, item in enumerate(group.items):
        if isinstance(item, Operator):
            # A leading operator would produce invalid SQL
            if position > 0:
                parts.append(f" {item.token} ")
        elif isinstance(item, Group):
            parts.append(f"({_render_group(item)})")
        else:
            parts.append(render(item))
    return ''.join(parts)


def _normalize_match_args(arg1, arg2, arg3) -> List[Any]:
    """Turn match() positional arguments into a list of condition entries."""
    if isinstance(arg1, list):
        return list(arg1)
    if arg3 is not MISSING:
        return [(arg1, arg2, arg3)]
    if arg2 is not MISSING:
        return [(arg1, arg2)]
    return [(arg1,)]


def _unpack_condition(condition: Sequence[Any]) -> Tuple[Optional[str], str, Any]:
    if len(condition) == 1:
        return None, '=', condition[0]
    if len(condition) == 2:
        return condition[0], '=', condition[1]
    if len(condition) == 3:
        return condition[0], condition[1], condition[2]
    raise ValueError(f"A match condition takes 1 to 3 elements, got {len(condition)}: {condition!r}")


def compile_match(
    table: str,
    schema: Optional[TableSchema],
    arg1: Any,
    arg2: Any = MISSING,
    arg3: Any = MISSING
) -> Tuple[Group, Dict[str, Binding]]:
    """
    Compile match() arguments into a WHERE group and its parameter bindings.

    Accepted shapes:
        value                          primary key = value
        column, value                  column = value
        column, operator, value        column <operator> value
        [entry, entry, ...]            list of 1/2/3-tuples and raw strings

    Conditions in a list become siblings of one group; no AND is inserted
    between them, so pass 'AND' strings between entries to join them.

    Args:
        table: Table the conditions apply to (used in error messages)
        schema: TableSchema of the table, or None when unavailable
        arg1, arg2, arg3: match() arguments; MISSING marks an omitted argument

    Returns:
        Tuple of (Group of conditions, {param name: Binding})

    Raises:
        SchemaUnavailableError: If a condition omits its column and the table
            has no known primary key
    """
    group = Group()
    params: Dict[str, Binding] = {}
    counter = 0

    for entry in _normalize_match_args(arg1, arg2, arg3):
        if not isinstance(entry, (list, tuple)):
            group.append(build_node(entry))
            continue

        column, operator, value = _unpack_condition(entry)

        if column is None:
            if schema is None or schema.primary_key is None:
                raise SchemaUnavailableError(
                    f"No primary key known for table '{table}'; pass a column name to match()"
                )
            column = schema.primary_key.name

        if isinstance(value, RawValue):
            group.append(Condition(f"{column} = {value.get()}"))
            continue

        counter += 1
        name = f":__{param_name(column)}{counter}"

        if value is None:
            if str(operator).strip().lower() in NEGATED_OPERATORS:
                group.append(Condition(f"{column} IS NOT NULL"))
            else:
                group.append(Condition(f"{column} IS NULL"))
            continue

        param_type = schema.param_type(column) if schema is not None else ParamType.STRING
        group.append(Condition(f"{column} {operator} {name}"))
        params[name] = Binding(value, param_type)

    return group, params
