"""
==========================================
Clause model.
==========================================

Statement holds the mutable state of the query being built: operation,
table, columns, bound parameters, FROM/JOIN entries, the WHERE tree,
GROUP BY, HAVING, ORDER BY, LIMIT and the raw query text. It performs no
I/O; schema information needed for column typing is passed in by the
caller.

Column storage depends on the operation:
    SELECT / SELECT DISTINCT   select_columns: list of column expressions
    INSERT / REPLACE / UPDATE  columns: ordered {column name: value expression}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from querybuilder.binder import Binding, bind_param, bind_params, resolve_column
from querybuilder.schema import TableSchema
from querybuilder.types import Operation, ParamType
from querybuilder.where import Group, Operator, build_node

# A join is a raw JOIN clause, one (join type, table, on condition) triple or a sequence of them
JoinSpec = Union[None, str, Tuple[str, str, str], Sequence[Tuple[str, str, str]], Mapping[str, Tuple[str, str]]]


@dataclass
class FromEntry:
    table: str
    join: JoinSpec = None


@dataclass
class Limit:
    start: Union[int, str]
    end: Union[int, str, None] = None


def parse_select_columns(columns: Union[str, Sequence[str], Mapping[Any, str]]) -> List[str]:
    """
    Expand a SELECT column specification into column expressions.

    Args:
        columns: Comma separated string, sequence of expressions, or mapping
            of alias -> expression (integer keys mean no alias)

    Returns:
        List of column expressions

    Example:
        >>> parse_select_columns('id, name')
        ['id', 'name']
        >>> parse_select_columns({'total': 'count(*)', 0: 'status'})
        ['count(*) AS total', 'status']
    """
    if isinstance(columns, str):
        return [column.strip() for column in columns.split(',')]
    if isinstance(columns, Mapping):
        return [
            f"{expression} AS {alias}" if isinstance(alias, str) else str(expression)
            for alias, expression in columns.items()
        ]
    return [str(column) for column in columns]


def _is_join_triple(value: Any) -> bool:
    return (
        isinstance(value, (list, tuple))
        and len(value) == 3
        and all(isinstance(part, str) for part in value)
    )


def normalize_joins(join: JoinSpec) -> JoinSpec:
    """
    Normalize a join specification.

    A raw JOIN string is kept as is; a {join type: (table, on)} mapping, a
    single (join type, table, on) triple or a sequence of triples becomes a
    list of triples.

    Raises:
        TypeError: If an entry is not a (join type, table, on) triple
    """
    if isinstance(join, Mapping):
        return [(join_type, table, on) for join_type, (table, on) in join.items()]
    if join is None or isinstance(join, str):
        return join
    if _is_join_triple(join):
        return [tuple(join)]

    triples = []
    for entry in join:
        if not _is_join_triple(entry):
            raise TypeError(f"Join entries must be (join type, table, on) triples, got {entry!r}")
        triples.append(tuple(entry))
    return triples


@dataclass
class Statement:
    """Mutable state of the statement being built."""

    operation: Optional[Operation] = None
    table: Optional[str] = None
    select_columns: List[str] = field(default_factory=list)
    columns: Dict[str, str] = field(default_factory=dict)
    params: Dict[str, Binding] = field(default_factory=dict)
    from_list: List[FromEntry] = field(default_factory=list)
    where: Group = field(default_factory=Group)
    group: List[str] = field(default_factory=list)
    having: str = ''
    order: List[str] = field(default_factory=list)
    limit: Optional[Limit] = None
    raw_query: str = ''

    def reset(self) -> None:
        """Clear every clause field."""
        self.operation = None
        self.table = None
        self.select_columns = []
        self.columns = {}
        self.params = {}
        self.from_list = []
        self.where = Group()
        self.group = []
        self.having = ''
        self.order = []
        self.limit = None
        self.raw_query = ''

    def start(self, operation: Operation, table: Optional[str] = None) -> None:
        self.reset()
        self.operation = operation
        self.table = table

    # FROM / JOIN

    def set_from(self, table: str, join: JoinSpec = None) -> None:
        self.from_list = []
        self.add_from(table, join)

    def add_from(self, table: str, join: JoinSpec = None) -> None:
        self.from_list.append(FromEntry(table, normalize_joins(join)))

    # Columns and parameters

    def add_column(self, name: str, value: Any, schema: Optional[TableSchema] = None) -> None:
        expression, binding = resolve_column(name, value, schema)
        self.columns[name] = expression
        if binding is not None:
            param, bound = binding
            self.params[param] = bound

    def bind_param(self, name: str, value: Any, param_type: Union[ParamType, str]) -> None:
        bind_param(self.params, name, value, param_type)

    def bind_params(self, bindings: Mapping[str, Tuple[Any, Any]]) -> None:
        bind_params(self.params, bindings)

    # WHERE

    def set_where(self, condition: Any) -> None:
        self.where = Group([build_node(condition)])

    def replace_where(self, group: Group) -> None:
        self.where = group

    def append_where(self, operator: str, condition: Any) -> None:
        self.where.append(Operator(operator))
        self.where.append(build_node(condition))

    # GROUP BY / HAVING / ORDER BY / LIMIT

    def set_group(self, expression: str) -> None:
        self.group = [expression]

    def add_group(self, expression: str) -> None:
        self.group.append(expression)

    def set_having(self, clause: str) -> None:
        self.having = clause

    def set_order(self, keyword: str) -> None:
        self.order = [keyword]

    def add_order(self, keyword: str) -> None:
        self.order.append(keyword)

    def set_limit(self, start: Union[int, str], end: Union[int, str, None] = None) -> None:
        self.limit = Limit(start, end)
