"""
Debug Dump Module
=================

JSON dump of an equation system for offline inspection, one file per
network named ``<network id>.json``.
"""

import json
import logging
import math
import os
from typing import Any, Dict

logger = logging.getLogger(__name__)


def _number(value: float):
    return value if math.isfinite(value) else None


def equation_system_to_dict(network, equation_system) -> Dict[str, Any]:
    """
    Plain representation of the variables, equations and state vector.

    Parameters
    ----------
    network : LfNetwork
    equation_system : EquationSystem

    Returns
    -------
    Dict[str, Any]
    """
    variables = [
        {
            "type": v.type.name,
            "element_num": v.element_num,
            "row": v.row,
            "value": _number(v.value),
        }
        for v in sorted(equation_system.variables, key=lambda v: v.sort_key())
    ]
    equations = [
        {
            "type": eq.type.name,
            "element_num": eq.element_num,
            "active": eq.active,
            "column": eq.column,
            "terms": [
                {"name": t.name(), "active": t.active,
                 "variables": [f"{v.type.name}[{v.element_num}]" for v in t.variables]}
                for t in eq.terms
            ],
        }
        for eq in sorted(equation_system.equations, key=lambda eq: eq.sort_key())
    ]
    return {
        "network_id": network.id,
        "variables": variables,
        "equations": equations,
        "state_vector": [_number(x) for x in equation_system.state_vector.array],
    }


def write_debug_dump(directory: str, network, equation_system) -> str:
    """
    Write the equation system dump of a network into ``directory``.

    Returns
    -------
    str
        Path of the written file.
    """
    os.makedirs(directory, exist_ok=True)
    path = os.path.join(directory, f"{network.id}.json")
    with open(path, "w") as f:
        json.dump(equation_system_to_dict(network, equation_system), f, indent=2)
    logger.info("Equation system of network '%s' written to %s", network.id, path)
    return path
