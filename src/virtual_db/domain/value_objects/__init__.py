"""Value objects for the virtual database domain.

Exports:
    AST:
        - Expression node kinds (BinaryOp, UnaryOp, InOp, IsNullOp, LikeOp,
          Literal, Identifier, Placeholder, FunctionCall, Subquery)
        - Statements (SelectStatement, InsertStatement, UpdateStatement,
          DeleteStatement)
        - bind_parameters: Substitute literals for placeholders

    Values:
        - ValueInterface: Scalar-or-set abstraction
        - ScalarValue, ValueList, LazySubquery: Implementations
        - loose_equals, parse_number: SQL coercion helpers
"""

from virtual_db.domain.value_objects.ast import (
    BinaryOp,
    BinaryOperator,
    DeleteStatement,
    Expression,
    FunctionCall,
    Identifier,
    InOp,
    InsertStatement,
    IsNullOp,
    LikeOp,
    Literal,
    OrderTerm,
    Parameters,
    Placeholder,
    ResultColumn,
    SelectStatement,
    Star,
    Statement,
    Subquery,
    UnaryOp,
    UnaryOperator,
    UpdateStatement,
    bind_parameters,
    has_placeholders,
    iter_nodes,
    lookup_parameter,
)
from virtual_db.domain.value_objects.values import (
    LazySubquery,
    ScalarValue,
    ValueInterface,
    ValueList,
    loose_equals,
    parse_number,
)

__all__ = [
    # AST
    "BinaryOp",
    "BinaryOperator",
    "DeleteStatement",
    "Expression",
    "FunctionCall",
    "Identifier",
    "InOp",
    "InsertStatement",
    "IsNullOp",
    "LikeOp",
    "Literal",
    "OrderTerm",
    "Parameters",
    "Placeholder",
    "ResultColumn",
    "SelectStatement",
    "Star",
    "Statement",
    "Subquery",
    "UnaryOp",
    "UnaryOperator",
    "UpdateStatement",
    "bind_parameters",
    "has_placeholders",
    "iter_nodes",
    "lookup_parameter",
    # Values
    "LazySubquery",
    "ScalarValue",
    "ValueInterface",
    "ValueList",
    "loose_equals",
    "parse_number",
]
