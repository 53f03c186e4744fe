"""
Network Listener Module
=======================

Observer interface of the network model. Every mutation that changes what
the solver computes goes through an LfNetwork method which notifies the
registered listeners synchronously, in registration order.
"""


class NetworkListener:
    """
    Base class of network mutation observers.

    All callbacks are no-ops; subclasses override the ones they need.
    Listeners must not mutate the network from inside a callback.
    """

    def on_generator_target_p_change(self, generator, old_value: float, new_value: float) -> None:
        pass

    def on_load_target_p_change(self, load, old_value: float, new_value: float) -> None:
        pass

    def on_load_target_q_change(self, load, old_value: float, new_value: float) -> None:
        pass

    def on_voltage_control_change(self, bus, enabled: bool) -> None:
        pass

    def on_generation_target_q_change(self, bus, old_value: float, new_value: float) -> None:
        pass

    def on_tap_position_change(self, branch, old_position: int, new_position: int) -> None:
        pass

    def on_shunt_section_change(self, shunt, old_section: int, new_section: int) -> None:
        pass
