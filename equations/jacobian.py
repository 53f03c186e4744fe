"""
Jacobian Matrix Module
======================

This module defines JacobianMatrix, the sparse matrix of partial
derivatives of the active equations with respect to the active variables,
together with its LU factorisation.

Row i of the matrix is the equation of column index i, column j the
variable of row index j, so that ``J @ dx = mismatch`` is solved for a
correction ``dx`` laid out like the state vector.

The matrix is rebuilt lazily:

- VALUES_INVALID: derivatives are re-evaluated on the cached sparsity
  pattern and the matrix is refactorised. Set on state updates and on
  network mutations changing term parameters.
- STRUCTURE_INVALID: the sparsity pattern is collected again. Set on any
  equation or term (de)activation.

The factorisation is a scoped resource released by ``close()``.
"""

import logging
from enum import Enum
from typing import List, Optional, Tuple

import numpy as np
from numpy.typing import NDArray
from scipy.sparse import csc_matrix
from scipy.sparse.linalg import splu

from core.exceptions import JacobianSingularError
from equations.equation_term import EquationTerm
from equations.events import EquationEventType, EquationSystemListener
from equations.variable import Variable
from network.listener import NetworkListener

logger = logging.getLogger(__name__)


class JacobianStatus(Enum):
    VALID = "VALID"
    VALUES_INVALID = "VALUES_INVALID"
    STRUCTURE_INVALID = "STRUCTURE_INVALID"


class JacobianMatrix(NetworkListener, EquationSystemListener):
    """
    Sparse Jacobian matrix with cached LU factorisation.

    Parameters
    ----------
    equation_system : EquationSystem
        Equation system differentiated by the matrix.
    network : LfNetwork, optional
        Network whose mutations invalidate the matrix values.
    """

    def __init__(self, equation_system, network=None) -> None:
        self._equation_system = equation_system
        self._network = network
        self.status = JacobianStatus.STRUCTURE_INVALID
        self._entries: List[Tuple[int, int, EquationTerm, Variable]] = []
        self._shape: Tuple[int, int] = (0, 0)
        self._matrix: Optional[csc_matrix] = None
        self._lu = None
        equation_system.add_listener(self)
        if network is not None:
            network.add_listener(self)

    # =========================================================================
    # Invalidation
    # =========================================================================

    def _invalidate_values(self) -> None:
        if self.status is JacobianStatus.VALID:
            self.status = JacobianStatus.VALUES_INVALID

    def _invalidate_structure(self) -> None:
        self.status = JacobianStatus.STRUCTURE_INVALID

    def on_equation_change(self, equation, event_type: EquationEventType) -> None:
        if event_type is EquationEventType.CREATED and not equation.terms:
            return
        self._invalidate_structure()

    def on_term_change(self, term) -> None:
        self._invalidate_structure()

    def on_state_update(self) -> None:
        self._invalidate_values()

    def on_load_target_p_change(self, load, old_value, new_value) -> None:
        self._invalidate_values()

    def on_tap_position_change(self, branch, old_position, new_position) -> None:
        self._invalidate_values()

    def on_shunt_section_change(self, shunt, old_section, new_section) -> None:
        self._invalidate_values()

    # =========================================================================
    # Build
    # =========================================================================

    def _collect_entries(self) -> None:
        equations = self._equation_system.index.sorted_equations()
        variables = self._equation_system.index.sorted_variables()
        entries = []
        for eq in equations:
            for term in eq.terms:
                if not term.active:
                    continue
                for v in term.variables:
                    if v.row >= 0:
                        entries.append((eq.column, v.row, term, v))
        self._entries = entries
        self._shape = (len(equations), len(variables))
        logger.debug("Jacobian structure: %dx%d, %d term derivatives",
                     self._shape[0], self._shape[1], len(entries))

    def _evaluate(self) -> None:
        n = len(self._entries)
        rows = np.empty(n, dtype=np.int64)
        cols = np.empty(n, dtype=np.int64)
        values = np.empty(n, dtype=np.float64)
        for k, (row, col, term, variable) in enumerate(self._entries):
            rows[k] = row
            cols[k] = col
            values[k] = term.der(variable)
        # duplicates (several terms on the same variable) are summed
        self._matrix = csc_matrix((values, (rows, cols)), shape=self._shape)

    def _update(self) -> None:
        if self.status is JacobianStatus.VALID:
            return
        if self.status is JacobianStatus.STRUCTURE_INVALID:
            self._collect_entries()
        self._evaluate()
        self._lu = None
        self.status = JacobianStatus.VALID

    @property
    def matrix(self) -> csc_matrix:
        self._update()
        return self._matrix

    def _factorization(self):
        self._update()
        if self._lu is None:
            n_rows, n_cols = self._shape
            if n_rows != n_cols:
                raise JacobianSingularError(
                    f"Jacobian matrix is not square ({n_rows} equations, {n_cols} variables)"
                )
            if n_rows == 0:
                raise JacobianSingularError("Jacobian matrix is empty")
            try:
                self._lu = splu(self._matrix)
            except RuntimeError as e:
                raise JacobianSingularError(f"Jacobian matrix factorization failed: {e}") from e
        return self._lu

    # =========================================================================
    # Solve
    # =========================================================================

    def solve(self, b: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Solve ``J x = b``.

        Raises
        ------
        JacobianSingularError
            If the matrix is singular or the solution is not finite.
        """
        x = self._factorization().solve(np.asarray(b, dtype=np.float64))
        if not np.all(np.isfinite(x)):
            raise JacobianSingularError("Jacobian solve produced non-finite values")
        return x

    def solve_transposed(self, b: NDArray[np.float64]) -> NDArray[np.float64]:
        """
        Solve ``J^T x = b`` for one right-hand side or a matrix of them.

        Used for sensitivities: for a function s of the variables with
        gradient g, ``w = solve_transposed(g)`` gives ``ds/dtarget_e`` as
        ``w[e.column]`` for every active equation e.
        """
        x = self._factorization().solve(np.asarray(b, dtype=np.float64), trans="T")
        if not np.all(np.isfinite(x)):
            raise JacobianSingularError("Jacobian transposed solve produced non-finite values")
        return x

    def close(self) -> None:
        """Release the factorisation and unregister from the observed objects."""
        self._equation_system.remove_listener(self)
        if self._network is not None:
            self._network.remove_listener(self)
        self._lu = None
        self._matrix = None
        self._entries = []
        self.status = JacobianStatus.STRUCTURE_INVALID
