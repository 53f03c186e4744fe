"""
Exceptions Module
=================

Error types raised by the load flow. Numerical non-convergence is never
raised; it is reported through solver status values. Only the conditions
below escape as exceptions.
"""


class LoadFlowError(RuntimeError):
    """Base class for load flow errors."""


class SlackDistributionFailure(LoadFlowError):
    """
    Raised when the slack mismatch cannot be distributed.

    Only raised when ``throw_on_slack_distribution_failure`` is set in the
    load flow parameters; otherwise the residual is logged and the solve
    continues with it on the slack bus.

    Attributes
    ----------
    remaining_mismatch : float
        Active power left undistributed, in per-unit.
    """

    def __init__(self, remaining_mismatch: float) -> None:
        self.remaining_mismatch = remaining_mismatch
        super().__init__(
            f"Failed to distribute slack bus active power mismatch, "
            f"{remaining_mismatch * 100.0:.6f} MW remains"
        )


class JacobianSingularError(LoadFlowError):
    """Raised when the Jacobian matrix cannot be factorised or solved."""
