"""Lark grammar for computed field expressions.

Function calls are substituted before parsing, so the grammar covers
plain arithmetic only:

    a + b * 2
    -(subtotal - discount) / 3
    .5 * rate

Semicolons, quotes, brackets, exponent notation and any other syntax
fail to parse.
"""

FORMULA_GRAMMAR = r"""
    ?start: additive

    ?additive: multiplicative
        | additive ADD_OP multiplicative -> binary_op

    ?multiplicative: unary
        | multiplicative MUL_OP unary -> binary_op

    ?unary: atom
        | ADD_OP unary -> unary_op

    ?atom: NUMBER -> number
        | FIELD_REF -> field_ref
        | "(" additive ")"

    ADD_OP: /[+-]/
    MUL_OP: /[*\/]/

    // Same token shape the reference extractor looks for
    FIELD_REF: /[a-zA-Z_][a-zA-Z0-9_]*/

    // Sign is a unary operator, not part of the literal
    NUMBER: /(?:[0-9]+\.?[0-9]*|\.[0-9]+)/

    %import common.WS
    %ignore WS
"""
