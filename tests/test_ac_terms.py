"""
Tests for the AC equation terms: values at simple states and partial
derivatives against central finite differences.
"""

import math

import pytest

from equations.ac_terms import (
    BusVoltageSquaredEquationTerm,
    ClosedBranchCurrentMagnitudeEquationTerm,
    ClosedBranchSide1ActiveFlowEquationTerm,
    ClosedBranchSide1ReactiveFlowEquationTerm,
    ClosedBranchSide2ActiveFlowEquationTerm,
    ClosedBranchSide2ReactiveFlowEquationTerm,
    ShuntCompensatorReactiveFlowEquationTerm,
)
from equations.equation_term import MultiplyByScalarEquationTerm
from equations.types import VariableType
from equations.variable import Variable
from network.elements import LfBranch, LfShunt

BRANCH_TERMS = [
    ClosedBranchSide1ActiveFlowEquationTerm,
    ClosedBranchSide1ReactiveFlowEquationTerm,
    ClosedBranchSide2ActiveFlowEquationTerm,
    ClosedBranchSide2ReactiveFlowEquationTerm,
]

H = 1e-6


def _make_variables():
    v1 = Variable(0, VariableType.BUS_V)
    v2 = Variable(1, VariableType.BUS_V)
    ph1 = Variable(0, VariableType.BUS_PHI)
    ph2 = Variable(1, VariableType.BUS_PHI)
    r1 = Variable(0, VariableType.BRANCH_RHO1)
    a1 = Variable(0, VariableType.BRANCH_ALPHA1)
    v1.value, v2.value = 1.03, 0.97
    ph1.value, ph2.value = 0.05, -0.12
    r1.value, a1.value = 1.04, 0.03
    return v1, v2, ph1, ph2, r1, a1


def _make_branch():
    return LfBranch(num=0, id="br", bus1_num=0, bus2_num=1, r=0.02, x=0.15,
                    g1=0.001, b1=0.02, g2=0.002, b2=0.015)


def _finite_difference(term, variable):
    x0 = variable.value
    variable.value = x0 + H
    f_plus = term.eval()
    variable.value = x0 - H
    f_minus = term.eval()
    variable.value = x0
    return (f_plus - f_minus) / (2 * H)


class TestClosedBranchTerms:

    @pytest.mark.parametrize("term_class", BRANCH_TERMS)
    def test_derivatives(self, term_class):
        variables = _make_variables()
        term = term_class(_make_branch(), *variables)
        for v in variables:
            assert term.der(v) == pytest.approx(_finite_difference(term, v), rel=1e-6, abs=1e-8)

    @pytest.mark.parametrize("term_class", BRANCH_TERMS)
    def test_constant_ratio_read_from_branch(self, term_class):
        v1, v2, ph1, ph2, r1, a1 = _make_variables()
        branch = _make_branch()
        branch.fixed_rho1 = r1.value
        branch.fixed_alpha1 = a1.value
        with_variables = term_class(branch, v1, v2, ph1, ph2, r1, a1)
        with_constants = term_class(branch, v1, v2, ph1, ph2)
        assert with_constants.eval() == pytest.approx(with_variables.eval())
        assert len(with_constants.variables) == 4

    def test_lossless_line_flows(self):
        v1, v2, ph1, ph2, _, _ = _make_variables()
        branch = LfBranch(num=0, id="line", bus1_num=0, bus2_num=1, r=0.0, x=0.1)
        p1 = ClosedBranchSide1ActiveFlowEquationTerm(branch, v1, v2, ph1, ph2)
        p2 = ClosedBranchSide2ActiveFlowEquationTerm(branch, v1, v2, ph1, ph2)
        q1 = ClosedBranchSide1ReactiveFlowEquationTerm(branch, v1, v2, ph1, ph2)
        delta = ph1.value - ph2.value
        expected = v1.value * v2.value * math.sin(delta) / 0.1
        assert p1.eval() == pytest.approx(expected)
        assert p2.eval() == pytest.approx(-expected)
        assert q1.eval() == pytest.approx(
            (v1.value ** 2 - v1.value * v2.value * math.cos(delta)) / 0.1)

    def test_phase_shift_moves_flow(self):
        v1, v2, ph1, ph2, r1, a1 = _make_variables()
        branch = LfBranch(num=0, id="pst", bus1_num=0, bus2_num=1, r=0.0, x=0.1)
        p1 = ClosedBranchSide1ActiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        before = p1.eval()
        a1.value += 0.01
        assert p1.eval() > before
        assert p1.der(a1) > 0

    def test_unknown_variable(self):
        variables = _make_variables()
        term = ClosedBranchSide1ActiveFlowEquationTerm(_make_branch(), *variables)
        with pytest.raises(ValueError):
            term.der(Variable(5, VariableType.BUS_V))


class TestCurrentMagnitude:

    def test_value(self):
        v1, v2, ph1, ph2, r1, a1 = _make_variables()
        branch = _make_branch()
        p = ClosedBranchSide1ActiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        q = ClosedBranchSide1ReactiveFlowEquationTerm(branch, v1, v2, ph1, ph2, r1, a1)
        i = ClosedBranchCurrentMagnitudeEquationTerm(p, q, v1)
        assert i.eval() == pytest.approx(math.hypot(p.eval(), q.eval()) / v1.value)

    def test_derivatives(self):
        variables = _make_variables()
        v1 = variables[0]
        v2 = variables[1]
        branch = _make_branch()
        args = (branch,) + variables
        i1 = ClosedBranchCurrentMagnitudeEquationTerm(
            ClosedBranchSide1ActiveFlowEquationTerm(*args),
            ClosedBranchSide1ReactiveFlowEquationTerm(*args), v1)
        i2 = ClosedBranchCurrentMagnitudeEquationTerm(
            ClosedBranchSide2ActiveFlowEquationTerm(*args),
            ClosedBranchSide2ReactiveFlowEquationTerm(*args), v2)
        for term in (i1, i2):
            for v in variables:
                assert term.der(v) == pytest.approx(_finite_difference(term, v),
                                                    rel=1e-6, abs=1e-8)


class TestShuntTerms:

    def test_reactive_flow_constant_susceptance(self):
        v = Variable(0, VariableType.BUS_V)
        v.value = 1.05
        shunt = LfShunt(num=0, id="sh", bus_num=0, b_per_section=0.1, section=2, max_section=3)
        term = ShuntCompensatorReactiveFlowEquationTerm(shunt, v)
        assert term.eval() == pytest.approx(-0.2 * 1.05 ** 2)
        assert term.der(v) == pytest.approx(_finite_difference(term, v))
        assert term.variables == [v]

    def test_reactive_flow_variable_susceptance(self):
        v = Variable(0, VariableType.BUS_V)
        b = Variable(0, VariableType.SHUNT_B)
        v.value, b.value = 0.98, 0.15
        shunt = LfShunt(num=0, id="sh", bus_num=0, b_per_section=0.1)
        term = ShuntCompensatorReactiveFlowEquationTerm(shunt, v, b)
        assert term.eval() == pytest.approx(-0.15 * 0.98 ** 2)
        for var in (v, b):
            assert term.der(var) == pytest.approx(_finite_difference(term, var))

    def test_conductance_term(self):
        v = Variable(0, VariableType.BUS_V)
        v.value = 1.1
        term = MultiplyByScalarEquationTerm(BusVoltageSquaredEquationTerm(0, v), 0.02)
        assert term.eval() == pytest.approx(0.02 * 1.21)
        assert term.der(v) == pytest.approx(0.02 * 2.2)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
