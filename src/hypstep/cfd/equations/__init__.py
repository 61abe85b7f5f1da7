"""Equations of state and variable conversion."""

from .equation_state import (
    EquationOfState,
    EquationOfStateKind,
    polytropic_gas,
    noble_abel_stiffened_gas,
    create_equation_of_state,
)
from .primitive_conservative import (
    PrimitiveState,
    make_primitive_state,
    primitive_from_conserved,
    conserved_from_primitive,
    riemann_data,
    flux,
)

__all__ = [
    'EquationOfState',
    'EquationOfStateKind',
    'polytropic_gas',
    'noble_abel_stiffened_gas',
    'create_equation_of_state',
    'PrimitiveState',
    'make_primitive_state',
    'primitive_from_conserved',
    'conserved_from_primitive',
    'riemann_data',
    'flux',
]
