"""Extension core: topology, planning, mismatch handling and sequencing."""

from lvm_luks_extend.extend.mismatch import MismatchResolver
from lvm_luks_extend.extend.planner import CapacityPlanner
from lvm_luks_extend.extend.sequencer import ResizeSequencer
from lvm_luks_extend.extend.stages import StageBuilder
from lvm_luks_extend.extend.topology import TopologyInspector

__all__ = [
    "CapacityPlanner",
    "MismatchResolver",
    "ResizeSequencer",
    "StageBuilder",
    "TopologyInspector",
]
