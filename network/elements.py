"""
Network Elements Module
=======================

This module defines the elements of the load flow network model. Elements
are plain records stored in the arrays of an LfNetwork and refer to each
other through integer numbers (their position in those arrays), never
through object references.

All powers, admittances and voltages are in per-unit of the 100 MVA system
base (voltages per-unit of the bus nominal voltage), angles in radians.

Classes
-------
LfBus
    Network node with voltage magnitude and angle.
LfGenerator
    Generator connected to a bus.
LfLoad
    Load connected to a bus.
LfShunt
    Sectioned shunt compensator connected to a bus.
LfBranch
    Two-terminal pi-model line or transformer.
TapChanger
    Discrete list of (ratio, phase shift) steps of a transformer.
PhaseControl
    Active power regulation by a phase shifting transformer.
TransformerVoltageControl
    Remote voltage regulation by a ratio tap changer.
ShuntVoltageControl
    Voltage regulation by switching shunt sections.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ReactiveLimitType(Enum):
    """Reactive limit a PQ-switched bus has been pinned to."""
    MIN_Q = "MIN_Q"
    MAX_Q = "MAX_Q"


class PhaseControlMode(Enum):
    ACTIVE_POWER_CONTROL = "ACTIVE_POWER_CONTROL"
    CURRENT_LIMITER = "CURRENT_LIMITER"
    FIXED_TAP = "FIXED_TAP"


class ControlledSide(Enum):
    SIDE_1 = 1
    SIDE_2 = 2


# Default droop of generators, used by P_MAX participation
DEFAULT_DROOP = 4.0


@dataclass
class LfBus:
    """
    Network bus.

    Attributes
    ----------
    num : int
        Position in LfNetwork.buses.
    id : str
        Unique bus identifier.
    nominal_v : float
        Nominal voltage in kV.
    v : float
        Voltage magnitude in per-unit. Updated after every Newton-Raphson run.
    angle : float
        Voltage angle in radians. Updated after every Newton-Raphson run.
    fictitious : bool
        Internal bus (e.g. star point of a three-winding transformer),
        excluded from the realistic voltage check.
    slack : bool
        Bus selected as slack (angle reference, absorbs the imbalance).
    voltage_control_enabled : bool
        Bus is held at target_v by its generators (PV or slack bus).
    target_v : float
        Generator voltage target in per-unit.
    generation_target_q : float
        Reactive generation of the bus when it is not voltage controlled.
    reactive_limit_type : ReactiveLimitType or None
        Set when the bus was switched to PQ at one of its reactive limits.
    generator_nums, load_nums, shunt_nums, branch_nums : List[int]
        Numbers of connected elements.
    p, q : float
        Calculated active and reactive power injection, set after a solve.
    """
    num: int
    id: str
    nominal_v: float
    v: float = 1.0
    angle: float = 0.0
    fictitious: bool = False
    slack: bool = False
    voltage_control_enabled: bool = False
    target_v: float = math.nan
    generation_target_q: float = 0.0
    reactive_limit_type: Optional[ReactiveLimitType] = None
    generator_nums: List[int] = field(default_factory=list)
    load_nums: List[int] = field(default_factory=list)
    shunt_nums: List[int] = field(default_factory=list)
    branch_nums: List[int] = field(default_factory=list)
    p: float = math.nan
    q: float = math.nan


@dataclass
class LfGenerator:
    """
    Generator connected to a bus.

    Attributes
    ----------
    num : int
        Position in LfNetwork.generators.
    id : str
        Unique generator identifier.
    bus_num : int
        Number of the connected bus.
    target_p : float
        Active power target in per-unit. Mutated by distributed slack.
    min_p, max_p : float
        Active power limits in per-unit.
    target_q : float
        Reactive power target used when not regulating voltage.
    min_q, max_q : float
        Reactive power limits in per-unit.
    voltage_regulator_on : bool
        Generator regulates the voltage of its bus at target_v.
    target_v : float
        Voltage target in per-unit.
    participating : bool
        Generator takes part in distributed slack.
    participation_factor : float
        Explicit participation factor.
    droop : float
        Droop used to weight P_MAX participation.
    initial_target_p : float
        target_p as imported, before any distribution.
    """
    num: int
    id: str
    bus_num: int
    target_p: float = 0.0
    min_p: float = 0.0
    max_p: float = math.inf
    target_q: float = 0.0
    min_q: float = -math.inf
    max_q: float = math.inf
    voltage_regulator_on: bool = False
    target_v: float = math.nan
    participating: bool = True
    participation_factor: float = 0.0
    droop: float = DEFAULT_DROOP
    initial_target_p: float = math.nan

    def __post_init__(self) -> None:
        if math.isnan(self.initial_target_p):
            self.initial_target_p = self.target_p


@dataclass
class LfLoad:
    """
    Load connected to a bus, consuming target_p/target_q in per-unit.

    ``participating`` loads absorb the slack mismatch under
    BalanceType.PROPORTIONAL_TO_LOAD.
    """
    num: int
    id: str
    bus_num: int
    target_p: float = 0.0
    target_q: float = 0.0
    participating: bool = True
    initial_target_p: float = math.nan

    def __post_init__(self) -> None:
        if math.isnan(self.initial_target_p):
            self.initial_target_p = self.target_p


@dataclass
class ShuntVoltageControl:
    """
    Voltage regulation by a sectioned shunt.

    Attributes
    ----------
    controlled_bus_num : int
        Bus whose voltage is regulated.
    target_v : float
        Voltage target in per-unit.
    target_deadband : float
        Full deadband around target_v in per-unit. Zero means the default
        minimum deadband.
    enabled : bool
        Control is currently active.
    """
    controlled_bus_num: int
    target_v: float
    target_deadband: float = 0.0
    enabled: bool = True


@dataclass
class LfShunt:
    """
    Shunt compensator with identical sections.

    The susceptance is b_per_section * section, positive values inject
    reactive power (capacitor). ``g`` is a fixed conductance.
    """
    num: int
    id: str
    bus_num: int
    b_per_section: float
    section: int = 1
    max_section: int = 1
    g: float = 0.0
    voltage_control: Optional[ShuntVoltageControl] = None

    @property
    def b(self) -> float:
        return self.b_per_section * self.section


@dataclass
class TapChanger:
    """
    Transformer tap changer.

    Attributes
    ----------
    steps : List[Tuple[float, float]]
        (ratio, phase shift in radians) per tap position, position 0 first.
    position : int
        Current tap position, index into steps.
    """
    steps: List[Tuple[float, float]]
    position: int = 0

    def __post_init__(self) -> None:
        if not self.steps:
            raise ValueError("A tap changer needs at least one step")
        if not 0 <= self.position < len(self.steps):
            raise ValueError(
                f"Tap position {self.position} outside [0, {len(self.steps) - 1}]"
            )

    @property
    def rho(self) -> float:
        return self.steps[self.position][0]

    @property
    def alpha(self) -> float:
        return self.steps[self.position][1]

    @property
    def low_position(self) -> int:
        return 0

    @property
    def high_position(self) -> int:
        return len(self.steps) - 1

    def rho_at(self, position: int) -> float:
        return self.steps[position][0]

    def alpha_at(self, position: int) -> float:
        return self.steps[position][1]


@dataclass
class PhaseControl:
    """
    Active power regulation of a phase shifting transformer.

    Attributes
    ----------
    mode : PhaseControlMode
        Regulation mode.
    controlled_side : ControlledSide
        Side of the branch where the flow is measured.
    target_value : float
        Active power target in per-unit.
    target_deadband : float
        Full deadband in per-unit. Zero means the default minimum deadband.
    """
    mode: PhaseControlMode
    controlled_side: ControlledSide
    target_value: float
    target_deadband: float = 0.0


@dataclass
class TransformerVoltageControl:
    """Remote voltage regulation by the ratio tap changer of a branch."""
    controlled_bus_num: int
    target_v: float
    target_deadband: float = 0.0
    enabled: bool = True


@dataclass
class LfBranch:
    """
    Closed pi-model branch between bus1 and bus2.

    The series impedance is r + jx; (g1, b1) and (g2, b2) are the shunt
    admittances of each side. A ratio rho1 and phase shift alpha1 act on
    side 1. When a tap changer is present, rho1 and alpha1 follow the tap
    position.

    After a solve, p1/q1/p2/q2 hold the flows leaving each side and i1/i2
    the current magnitudes, all in per-unit.
    """
    num: int
    id: str
    bus1_num: int
    bus2_num: int
    r: float
    x: float
    g1: float = 0.0
    b1: float = 0.0
    g2: float = 0.0
    b2: float = 0.0
    fixed_rho1: float = 1.0
    fixed_alpha1: float = 0.0
    tap_changer: Optional[TapChanger] = None
    phase_control: Optional[PhaseControl] = None
    voltage_control: Optional[TransformerVoltageControl] = None
    p1: float = math.nan
    q1: float = math.nan
    p2: float = math.nan
    q2: float = math.nan
    i1: float = math.nan
    i2: float = math.nan

    def __post_init__(self) -> None:
        if self.r == 0.0 and self.x == 0.0:
            raise ValueError(f"Branch '{self.id}' has zero impedance")
        if self.bus1_num == self.bus2_num:
            raise ValueError(f"Branch '{self.id}' connects bus {self.bus1_num} to itself")
        if (self.phase_control is not None or self.voltage_control is not None) \
                and self.tap_changer is None:
            raise ValueError(f"Controlled branch '{self.id}' has no tap changer")

    @property
    def rho1(self) -> float:
        if self.tap_changer is not None:
            return self.tap_changer.rho
        return self.fixed_rho1

    @property
    def alpha1(self) -> float:
        if self.tap_changer is not None:
            return self.tap_changer.alpha
        return self.fixed_alpha1
