"""
Load Flow Context Module
========================

Scoped resources of one AC load flow run.

The equation system, Jacobian matrix, target and equation vectors are
created lazily on first access and registered as listeners of the network.
``close`` unregisters them and releases the factorisation; the context is
also a context manager so that the engine releases everything whatever the
outcome of the solve.
"""

import logging
from typing import Optional

from core.parameters import LoadFlowParameters
from equations.ac_system import (
    AcEquationSystem,
    AcEquationSystemUpdater,
    create_ac_equation_system,
    create_target_function,
)
from equations.jacobian import JacobianMatrix
from equations.vectors import EquationVector, TargetVector
from network.lf_network import LfNetwork

logger = logging.getLogger(__name__)


class AcLoadFlowContext:
    """
    Parameters
    ----------
    network : LfNetwork
        Network to solve, with its slack bus selected.
    parameters : LoadFlowParameters
    """

    def __init__(self, network: LfNetwork, parameters: LoadFlowParameters) -> None:
        self.network = network
        self.parameters = parameters
        self._equation_system: Optional[AcEquationSystem] = None
        self._updater: Optional[AcEquationSystemUpdater] = None
        self._jacobian: Optional[JacobianMatrix] = None
        self._target_vector: Optional[TargetVector] = None
        self._equation_vector: Optional[EquationVector] = None
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError(f"Load flow context of network '{self.network.id}' is closed")

    @property
    def equation_system(self) -> AcEquationSystem:
        self._check_open()
        if self._equation_system is None:
            self._equation_system = create_ac_equation_system(self.network, self.parameters)
            self._updater = AcEquationSystemUpdater(self._equation_system)
            self.network.add_listener(self._updater)
        return self._equation_system

    @property
    def jacobian(self) -> JacobianMatrix:
        self._check_open()
        if self._jacobian is None:
            self._jacobian = JacobianMatrix(self.equation_system, self.network)
        return self._jacobian

    @property
    def target_vector(self) -> TargetVector:
        self._check_open()
        if self._target_vector is None:
            self._target_vector = TargetVector(self.network, self.equation_system,
                                               create_target_function(self.network))
        return self._target_vector

    @property
    def equation_vector(self) -> EquationVector:
        self._check_open()
        if self._equation_vector is None:
            self._equation_vector = EquationVector(self.network, self.equation_system)
        return self._equation_vector

    def close(self) -> None:
        """Unregister every listener and release the Jacobian factorisation."""
        if self._closed:
            return
        if self._jacobian is not None:
            self._jacobian.close()
        if self._target_vector is not None:
            self._target_vector.close()
        if self._equation_vector is not None:
            self._equation_vector.close()
        if self._updater is not None:
            self.network.remove_listener(self._updater)
        self._closed = True
        logger.debug("Load flow context of network '%s' closed", self.network.id)

    @property
    def closed(self) -> bool:
        return self._closed

    def __enter__(self) -> "AcLoadFlowContext":
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        self.close()
