"""
Vectors Module
==============

Dense vectors of the equation system, all rebuilt lazily.

Classes
-------
StateVector
    Values of the active variables, indexed by variable row.
TargetVector
    Targets minus constant term parts of the active equations, indexed by
    equation column. Rebuilt when the network notifies a target change.
EquationVector
    Values of the active equations at the current state, indexed by
    equation column.
"""

from typing import Callable, Optional

import numpy as np
from numpy.typing import NDArray

from equations.events import EquationEventType, EquationSystemListener
from network.listener import NetworkListener


class StateVector(EquationSystemListener):
    """
    Dense values of the active variables.

    After a structural change the vector is rebuilt from the values retained
    by the variables, so deactivated variables come back with their last
    value.
    """

    def __init__(self, equation_system) -> None:
        self._equation_system = equation_system
        self._array: Optional[NDArray[np.float64]] = None
        equation_system.add_listener(self)

    def on_equation_change(self, equation, event_type: EquationEventType) -> None:
        self._array = None

    def on_term_change(self, term) -> None:
        self._array = None

    @property
    def array(self) -> NDArray[np.float64]:
        if self._array is None:
            variables = self._equation_system.index.sorted_variables()
            self._array = np.array([v.value for v in variables], dtype=np.float64)
        return self._array

    def set(self, array: NDArray[np.float64]) -> None:
        expected = len(self._equation_system.index.sorted_variables())
        if len(array) != expected:
            raise ValueError(f"State vector length {len(array)} differs from "
                             f"active variable count {expected}")
        self._array = np.array(array, dtype=np.float64)

    def get(self, variable) -> float:
        if variable.row < 0:
            return variable.value
        return float(self.array[variable.row])

    def __len__(self) -> int:
        return len(self.array)


class TargetVector(NetworkListener, EquationSystemListener):
    """
    Targets of the active equations.

    Parameters
    ----------
    network : LfNetwork
        Network providing the targets. The vector registers as listener.
    equation_system : EquationSystem
        Equation system whose active equations are covered.
    target_function : Callable[[Equation], float]
        Target of one equation, evaluated against the network.
    """

    def __init__(self, network, equation_system, target_function: Callable) -> None:
        self._network = network
        self._equation_system = equation_system
        self._target_function = target_function
        self._array: Optional[NDArray[np.float64]] = None
        network.add_listener(self)
        equation_system.add_listener(self)

    def invalidate(self) -> None:
        self._array = None

    # equation system events
    def on_equation_change(self, equation, event_type: EquationEventType) -> None:
        self.invalidate()

    def on_term_change(self, term) -> None:
        self.invalidate()

    # network events
    def on_generator_target_p_change(self, generator, old_value, new_value) -> None:
        self.invalidate()

    def on_load_target_p_change(self, load, old_value, new_value) -> None:
        self.invalidate()

    def on_load_target_q_change(self, load, old_value, new_value) -> None:
        self.invalidate()

    def on_voltage_control_change(self, bus, enabled) -> None:
        self.invalidate()

    def on_generation_target_q_change(self, bus, old_value, new_value) -> None:
        self.invalidate()

    def on_tap_position_change(self, branch, old_position, new_position) -> None:
        self.invalidate()

    def on_shunt_section_change(self, shunt, old_section, new_section) -> None:
        self.invalidate()

    @property
    def array(self) -> NDArray[np.float64]:
        if self._array is None:
            equations = self._equation_system.index.sorted_equations()
            self._array = np.array(
                [self._target_function(eq) - eq.rhs() for eq in equations],
                dtype=np.float64,
            )
        return self._array

    def close(self) -> None:
        self._network.remove_listener(self)
        self._equation_system.remove_listener(self)
        self._array = None


class EquationVector(NetworkListener, EquationSystemListener):
    """
    Values of the active equations at the current state.

    Terms reading tap or shunt section values from the network change with
    them, so the vector also listens to the network.
    """

    def __init__(self, network, equation_system) -> None:
        self._network = network
        self._equation_system = equation_system
        self._array: Optional[NDArray[np.float64]] = None
        network.add_listener(self)
        equation_system.add_listener(self)

    def on_tap_position_change(self, branch, old_position, new_position) -> None:
        self._array = None

    def on_shunt_section_change(self, shunt, old_section, new_section) -> None:
        self._array = None

    def on_equation_change(self, equation, event_type: EquationEventType) -> None:
        self._array = None

    def on_term_change(self, term) -> None:
        self._array = None

    def on_state_update(self) -> None:
        self._array = None

    @property
    def array(self) -> NDArray[np.float64]:
        if self._array is None:
            equations = self._equation_system.index.sorted_equations()
            self._array = np.array([eq.eval() for eq in equations], dtype=np.float64)
        return self._array

    def close(self) -> None:
        self._network.remove_listener(self)
        self._equation_system.remove_listener(self)
        self._array = None
