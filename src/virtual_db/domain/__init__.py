"""Domain layer: AST, values, collation and expression evaluation."""
