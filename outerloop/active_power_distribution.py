"""
Active Power Distribution Module
================================

Spreading of an active power mismatch over participating generators or
loads.

The mismatch is allocated proportionally to normalised participation
factors. Elements reaching a limit are clamped to it and leave the
participating set; the remainder is allocated again among the others,
until nothing remains or no element participates any more.
"""

import logging
import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Tuple

from core.parameters import BalanceType, LoadFlowParameters
from network.lf_network import LfNetwork

logger = logging.getLogger(__name__)

# Residual mismatch considered fully distributed, in per-unit.
P_RESIDUE_EPS = 1e-5


@dataclass
class ParticipatingElement:
    """Generator or load number with its participation factor."""
    num: int
    factor: float


def normalize_participation_factors(elements: List[ParticipatingElement]) -> None:
    total = sum(e.factor for e in elements)
    if total != 0.0:
        for e in elements:
            e.factor /= total


@dataclass(frozen=True)
class ActivePowerDistributionResult:
    """
    Attributes
    ----------
    iterations : int
        Number of allocation passes.
    remaining_mismatch : float
        Active power left undistributed, in per-unit.
    moved : bool
        At least one element target changed.
    """
    iterations: int
    remaining_mismatch: float
    moved: bool


class ActivePowerDistributionStep(ABC):

    @abstractmethod
    def participating_elements(self, network: LfNetwork) -> List[ParticipatingElement]:
        ...

    @abstractmethod
    def run(self, network: LfNetwork, elements: List[ParticipatingElement],
            remaining_mismatch: float) -> Tuple[float, List[ParticipatingElement]]:
        """
        Allocate ``remaining_mismatch`` once.

        Returns
        -------
        done : float
            Active power actually distributed, in generation convention.
        elements : List[ParticipatingElement]
            Elements still able to participate.
        """


class GenerationActivePowerDistributionStep(ActivePowerDistributionStep):
    """
    Distribution over generators.

    Generators never change sign: a producing generator is not pushed
    below max(min_p, 0), a consuming one not above min(max_p, 0).
    """

    def __init__(self, balance_type: BalanceType, use_active_limits: bool = True) -> None:
        self.balance_type = balance_type
        self.use_active_limits = use_active_limits

    def _factor(self, generator) -> float:
        t = self.balance_type
        if t is BalanceType.PROPORTIONAL_TO_GENERATION_P_MAX:
            return generator.max_p / generator.droop if generator.droop != 0.0 else 0.0
        if t is BalanceType.PROPORTIONAL_TO_GENERATION_P:
            return abs(generator.target_p)
        if t is BalanceType.PROPORTIONAL_TO_GENERATION_PARTICIPATION_FACTOR:
            return generator.participation_factor
        if t is BalanceType.PROPORTIONAL_TO_GENERATION_REMAINING_MARGIN:
            return max(0.0, generator.max_p - generator.target_p)
        raise ValueError(f"Unsupported balance type for generators: {t}")

    def participating_elements(self, network: LfNetwork) -> List[ParticipatingElement]:
        elements = []
        for generator in network.generators:
            if not generator.participating:
                continue
            factor = self._factor(generator)
            if math.isfinite(factor) and factor > 0.0:
                elements.append(ParticipatingElement(generator.num, factor))
        return elements

    def _limits(self, generator) -> Tuple[float, float]:
        if not self.use_active_limits:
            low, high = -math.inf, math.inf
        else:
            low, high = generator.min_p, generator.max_p
        if generator.initial_target_p >= 0.0:
            low = max(low, 0.0)
        else:
            high = min(high, 0.0)
        return low, high

    def run(self, network, elements, remaining_mismatch):
        done = 0.0
        still_participating = []
        for element in elements:
            generator = network.generators[element.num]
            target_p = generator.target_p
            new_target_p = target_p + remaining_mismatch * element.factor
            low, high = self._limits(generator)
            clamped = False
            if new_target_p > high and remaining_mismatch > 0:
                new_target_p = max(high, target_p)
                clamped = True
            elif new_target_p < low and remaining_mismatch < 0:
                new_target_p = min(low, target_p)
                clamped = True
            if not clamped:
                still_participating.append(element)
            network.set_generator_target_p(generator.num, new_target_p)
            done += new_target_p - target_p
        return done, still_participating


class LoadActivePowerDistributionStep(ActivePowerDistributionStep):
    """
    Distribution over loads, proportional to their consumption.

    Loads move opposite to generation and are never driven below zero.
    """

    def __init__(self, load_power_factor_constant: bool = False) -> None:
        self.load_power_factor_constant = load_power_factor_constant

    def participating_elements(self, network: LfNetwork) -> List[ParticipatingElement]:
        return [ParticipatingElement(load.num, load.target_p) for load in network.loads
                if load.participating and load.target_p > 0.0]

    def run(self, network, elements, remaining_mismatch):
        done = 0.0
        still_participating = []
        for element in elements:
            load = network.loads[element.num]
            target_p = load.target_p
            new_target_p = target_p - remaining_mismatch * element.factor
            if new_target_p < 0.0:
                new_target_p = 0.0
            else:
                still_participating.append(element)
            if self.load_power_factor_constant and target_p != 0.0:
                network.set_load_target_q(load.num, load.target_q * new_target_p / target_p)
            network.set_load_target_p(load.num, new_target_p)
            done += target_p - new_target_p
        return done, still_participating


class ActivePowerDistribution:
    """
    Distribute an active power mismatch with a distribution step.

    Parameters
    ----------
    step : ActivePowerDistributionStep
        Generator or load allocation rule.
    """

    def __init__(self, step: ActivePowerDistributionStep) -> None:
        self.step = step

    @classmethod
    def create(cls, parameters: LoadFlowParameters) -> "ActivePowerDistribution":
        if parameters.balance_type.is_load:
            return cls(LoadActivePowerDistributionStep(parameters.load_power_factor_constant))
        return cls(GenerationActivePowerDistributionStep(parameters.balance_type,
                                                         parameters.use_active_limits))

    def run(self, network: LfNetwork, mismatch: float) -> ActivePowerDistributionResult:
        """
        Distribute ``mismatch`` (per-unit, positive when generation must rise).

        Returns
        -------
        ActivePowerDistributionResult
        """
        elements = self.step.participating_elements(network)
        remaining = mismatch
        iterations = 0
        moved = False
        while elements and abs(remaining) > P_RESIDUE_EPS:
            normalize_participation_factors(elements)
            done, elements = self.step.run(network, elements, remaining)
            remaining -= done
            moved = moved or done != 0.0
            iterations += 1
        logger.debug("Active power distribution: %d iterations, %.6f pu remaining",
                     iterations, remaining)
        return ActivePowerDistributionResult(iterations, remaining, moved)
