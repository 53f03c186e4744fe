"""
Contingency Outer Loop Module
=============================

Placeholder for post-contingency limit checks. Contingency analysis is
not part of this load flow; the loop only reports that it was requested.
"""

import logging

from core.parameters import CONTINGENCY
from outerloop.base import OuterLoop, OuterLoopContext, OuterLoopStatus

logger = logging.getLogger(__name__)


class ContingencyOuterLoop(OuterLoop):

    @property
    def name(self) -> str:
        return CONTINGENCY

    def initialize(self, context: OuterLoopContext) -> None:
        logger.warning("Network '%s': contingency outer loop requested but contingency "
                       "analysis is not supported, loop is always stable", context.network.id)

    def check(self, context: OuterLoopContext) -> OuterLoopStatus:
        return OuterLoopStatus.STABLE
