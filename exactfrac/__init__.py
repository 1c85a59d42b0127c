"""Exact rational arithmetic package."""

from .fraction import (
    CONVERGENCE_TOLERANCE,
    DEFAULT_MAX_DENOMINATOR,
    RECIPROCAL_LIMIT,
    Fraction,
    ReleasedFractionError,
    as_fraction_array,
    compare,
    copy,
    from_double,
    from_integer,
    from_integer_engine_values,
    from_integers,
    from_string,
    maximum,
    minimum,
    neg_one,
    one,
    rationalize,
    release,
    retain,
    zero,
    zeros,
    zeros_like,
)
from .integers import (
    BigIntEngine,
    Int64Engine,
    IntegerEngine,
    get_default_engine,
    set_default_engine,
)

__all__ = [
    "Fraction",
    "ReleasedFractionError",
    "DEFAULT_MAX_DENOMINATOR",
    "CONVERGENCE_TOLERANCE",
    "RECIPROCAL_LIMIT",
    "from_integers",
    "from_integer_engine_values",
    "from_integer",
    "from_double",
    "from_string",
    "copy",
    "retain",
    "release",
    "zero",
    "one",
    "neg_one",
    "compare",
    "minimum",
    "maximum",
    "rationalize",
    "as_fraction_array",
    "zeros",
    "zeros_like",
    "IntegerEngine",
    "BigIntEngine",
    "Int64Engine",
    "get_default_engine",
    "set_default_engine",
]
