"""
Load Flow Parameters Module
===========================

This module defines the configuration of one AC load flow run: slack bus
selection, active power balancing, reactive limits, discrete controls,
outer-loop ordering, Newton-Raphson tuning and post-solve checks.

All parameters are immutable. Inconsistent values are rejected at
construction time with a ValueError.
"""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Tuple


class SlackBusSelectionMode(Enum):
    """Strategy used to pick the slack bus among voltage-controlled buses."""
    FIRST = "FIRST"
    MOST_MESHED = "MOST_MESHED"
    LARGEST_GENERATOR = "LARGEST_GENERATOR"
    NAME = "NAME"


class BalanceType(Enum):
    """Participation rule for distributed slack."""
    PROPORTIONAL_TO_GENERATION_P_MAX = "PROPORTIONAL_TO_GENERATION_P_MAX"
    PROPORTIONAL_TO_GENERATION_P = "PROPORTIONAL_TO_GENERATION_P"
    PROPORTIONAL_TO_GENERATION_PARTICIPATION_FACTOR = (
        "PROPORTIONAL_TO_GENERATION_PARTICIPATION_FACTOR"
    )
    PROPORTIONAL_TO_GENERATION_REMAINING_MARGIN = (
        "PROPORTIONAL_TO_GENERATION_REMAINING_MARGIN"
    )
    PROPORTIONAL_TO_LOAD = "PROPORTIONAL_TO_LOAD"

    @property
    def is_load(self) -> bool:
        return self is BalanceType.PROPORTIONAL_TO_LOAD


class VoltageInitMode(Enum):
    """Initial voltage values for the first Newton-Raphson run."""
    FLAT = "FLAT"
    PREVIOUS = "PREVIOUS"
    DC = "DC"


class StoppingCriteriaType(Enum):
    DEFAULT = "DEFAULT"
    PER_EQUATION_TYPE = "PER_EQUATION_TYPE"


class StateVectorScalingMode(Enum):
    """Damping applied to each Newton-Raphson correction."""
    NONE = "NONE"
    MAX_VOLTAGE_CHANGE = "MAX_VOLTAGE_CHANGE"
    LINE_SEARCH = "LINE_SEARCH"


# Outer loop names accepted in LoadFlowParameters.outer_loops
DISTRIBUTED_SLACK = "DistributedSlack"
REACTIVE_LIMITS = "ReactiveLimits"
INCREMENTAL_PHASE_CONTROL = "IncrementalPhaseControl"
INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL = "IncrementalTransformerVoltageControl"
INCREMENTAL_SHUNT_VOLTAGE_CONTROL = "IncrementalShuntVoltageControl"
CONTINGENCY = "Contingency"

OUTER_LOOP_NAMES: Tuple[str, ...] = (
    DISTRIBUTED_SLACK,
    REACTIVE_LIMITS,
    INCREMENTAL_PHASE_CONTROL,
    INCREMENTAL_TRANSFORMER_VOLTAGE_CONTROL,
    INCREMENTAL_SHUNT_VOLTAGE_CONTROL,
    CONTINGENCY,
)

DEFAULT_SOLVER = "NEWTON_RAPHSON"


@dataclass(frozen=True)
class LoadFlowParameters:
    """
    Parameters of one AC load flow run.

    Attributes
    ----------
    slack_bus_selection_mode : SlackBusSelectionMode
        How the slack bus is chosen among voltage-controlled buses.
    slack_bus_ids : Tuple[str, ...]
        Candidate bus ids for SlackBusSelectionMode.NAME, in priority order.
    distributed_slack : bool
        Distribute the slack bus active power mismatch over participating
        generators or loads.
    balance_type : BalanceType
        Participation rule used by distributed slack.
    use_active_limits : bool
        Clamp distributed generation to [min_p, max_p].
    load_power_factor_constant : bool
        Scale load reactive power with active power when loads participate.
    slack_bus_p_max_mismatch : float
        Slack bus active power mismatch tolerated without distribution, in MW.
    throw_on_slack_distribution_failure : bool
        Raise SlackDistributionFailure instead of logging when the mismatch
        cannot be fully distributed.
    reactive_limits : bool
        Enforce generator reactive power limits by PV/PQ switching.
    max_pq_pv_switch : int
        Maximum number of PQ to PV switches per bus and per solve.
    phase_shifter_regulation : bool
        Enable incremental phase shifter active power control.
    transformer_voltage_control : bool
        Enable incremental transformer (ratio tap changer) voltage control.
    shunt_voltage_control : bool
        Enable incremental shunt section voltage control.
    incremental_max_tap_shift : int
        Maximum number of tap positions a transformer moves per round.
    max_direction_change : int
        Number of direction reversals after which a discrete controller is
        locked to its current direction.
    voltage_initializer : VoltageInitMode
        Initial state of the first Newton-Raphson run.
    outer_loops : Tuple[str, ...]
        Explicit ordered outer loop names. Overrides the boolean switches
        above when non-empty.
    max_outer_loop_iterations : int
        Cap on the number of unstable outer-loop rounds.
    max_newton_raphson_iterations : int
        Cap on Newton-Raphson iterations per run.
    convergence_epsilon : float
        Maximum absolute per-unit mismatch per equation at convergence.
    stopping_criteria : StoppingCriteriaType
        DEFAULT compares every equation to convergence_epsilon,
        PER_EQUATION_TYPE uses the thresholds below.
    max_active_power_mismatch : float
        Threshold for active power equations in MW.
    max_reactive_power_mismatch : float
        Threshold for reactive power equations in Mvar.
    max_voltage_mismatch : float
        Threshold for voltage equations in per-unit.
    max_angle_mismatch : float
        Threshold for angle equations in radians.
    max_ratio_mismatch : float
        Threshold for transformer ratio equations in per-unit.
    max_susceptance_mismatch : float
        Threshold for shunt susceptance equations in per-unit.
    state_vector_scaling : StateVectorScalingMode
        Damping of the Newton-Raphson correction.
    min_realistic_voltage : float
        Lower bound of the realistic voltage band in per-unit.
    max_realistic_voltage : float
        Upper bound of the realistic voltage band in per-unit.
    solver : str
        Name of the registered AC solver.
    debug_dir : str or None
        Directory receiving a JSON dump of the equation system per network.
    """
    slack_bus_selection_mode: SlackBusSelectionMode = SlackBusSelectionMode.MOST_MESHED
    slack_bus_ids: Tuple[str, ...] = ()
    distributed_slack: bool = True
    balance_type: BalanceType = BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX
    use_active_limits: bool = True
    load_power_factor_constant: bool = False
    slack_bus_p_max_mismatch: float = 1.0
    throw_on_slack_distribution_failure: bool = False
    reactive_limits: bool = True
    max_pq_pv_switch: int = 2
    phase_shifter_regulation: bool = False
    transformer_voltage_control: bool = False
    shunt_voltage_control: bool = False
    incremental_max_tap_shift: int = 3
    max_direction_change: int = 2
    voltage_initializer: VoltageInitMode = VoltageInitMode.FLAT
    outer_loops: Tuple[str, ...] = ()
    max_outer_loop_iterations: int = 20
    max_newton_raphson_iterations: int = 15
    convergence_epsilon: float = 1e-4
    stopping_criteria: StoppingCriteriaType = StoppingCriteriaType.DEFAULT
    max_active_power_mismatch: float = 1e-2
    max_reactive_power_mismatch: float = 1e-2
    max_voltage_mismatch: float = 1e-4
    max_angle_mismatch: float = 1e-5
    max_ratio_mismatch: float = 1e-5
    max_susceptance_mismatch: float = 1e-4
    state_vector_scaling: StateVectorScalingMode = StateVectorScalingMode.NONE
    min_realistic_voltage: float = 0.5
    max_realistic_voltage: float = 1.5
    solver: str = DEFAULT_SOLVER
    debug_dir: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate parameters after initialisation."""
        if not isinstance(self.slack_bus_ids, tuple):
            object.__setattr__(self, "slack_bus_ids", tuple(self.slack_bus_ids))
        if not isinstance(self.outer_loops, tuple):
            object.__setattr__(self, "outer_loops", tuple(self.outer_loops))

        if (self.slack_bus_selection_mode is SlackBusSelectionMode.NAME
                and not self.slack_bus_ids):
            raise ValueError("slack_bus_ids must be given with slack bus selection mode NAME")
        for name in self.outer_loops:
            if name not in OUTER_LOOP_NAMES:
                raise ValueError(
                    f"Unknown outer loop '{name}', expected one of {OUTER_LOOP_NAMES}"
                )
        if len(set(self.outer_loops)) != len(self.outer_loops):
            raise ValueError(f"outer_loops contains duplicates: {self.outer_loops}")
        if self.max_outer_loop_iterations < 1:
            raise ValueError(
                f"max_outer_loop_iterations must be >= 1, got {self.max_outer_loop_iterations}"
            )
        if self.max_newton_raphson_iterations < 1:
            raise ValueError(
                f"max_newton_raphson_iterations must be >= 1, "
                f"got {self.max_newton_raphson_iterations}"
            )
        if self.convergence_epsilon <= 0:
            raise ValueError(
                f"convergence_epsilon must be positive, got {self.convergence_epsilon}"
            )
        if self.slack_bus_p_max_mismatch < 0:
            raise ValueError(
                f"slack_bus_p_max_mismatch must be non-negative, "
                f"got {self.slack_bus_p_max_mismatch}"
            )
        if self.max_pq_pv_switch < 0:
            raise ValueError(f"max_pq_pv_switch must be non-negative, got {self.max_pq_pv_switch}")
        if self.incremental_max_tap_shift < 1:
            raise ValueError(
                f"incremental_max_tap_shift must be >= 1, got {self.incremental_max_tap_shift}"
            )
        if self.max_direction_change < 1:
            raise ValueError(
                f"max_direction_change must be >= 1, got {self.max_direction_change}"
            )
        if not 0 < self.min_realistic_voltage < self.max_realistic_voltage:
            raise ValueError(
                f"Invalid realistic voltage band "
                f"[{self.min_realistic_voltage}, {self.max_realistic_voltage}]"
            )
        for name in ("max_active_power_mismatch", "max_reactive_power_mismatch",
                     "max_voltage_mismatch", "max_angle_mismatch",
                     "max_ratio_mismatch", "max_susceptance_mismatch"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive, got {getattr(self, name)}")

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "LoadFlowParameters":
        """
        Build parameters from plain values.

        Enum fields accept their member name as a string, tuple fields accept
        any sequence.

        Parameters
        ----------
        values : Mapping[str, Any]
            Field names mapped to values. Missing fields keep their default.

        Returns
        -------
        LoadFlowParameters

        Raises
        ------
        ValueError
            If a key is not a parameter name or an enum name is unknown.
        """
        enum_fields: Dict[str, type] = {
            "slack_bus_selection_mode": SlackBusSelectionMode,
            "balance_type": BalanceType,
            "voltage_initializer": VoltageInitMode,
            "stopping_criteria": StoppingCriteriaType,
            "state_vector_scaling": StateVectorScalingMode,
        }
        known = {f.name for f in fields(cls)}
        kwargs: Dict[str, Any] = {}
        for key, value in values.items():
            if key not in known:
                raise ValueError(f"Unknown load flow parameter '{key}'")
            if key in enum_fields and isinstance(value, str):
                try:
                    value = enum_fields[key][value.upper()]
                except KeyError:
                    raise ValueError(f"Invalid value '{value}' for parameter '{key}'") from None
            elif key in ("slack_bus_ids", "outer_loops"):
                value = tuple(value)
            kwargs[key] = value
        return cls(**kwargs)
