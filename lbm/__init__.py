"""
lbm/ — Multi-Resolution Lattice Boltzmann Solver
=================================================
Exports the interfaces the scripts and output collaborators use.

main.py imports: LBMSimulation, SolverConfig, build_case
data_pipeline.py imports: LBMSimulation → get_snapshot()
visualizer.py imports: LBMSimulation → step(), grid.walk()
"""

from .cases import CASES, build_case, lid_driven_cavity, periodic_box, refined_channel
from .collision import COLLISION_BGK, COLLISION_MRT
from .config import SolverConfig
from .errors import ConfigurationError, HierarchyError, LBMError, SimulationDiverged
from .grid import LatticeGrid
from .lattice import D2Q9, D3Q19
from .simulation import BodyCollaborator, LBMSimulation, TransportCollaborator
from .sites import HaloLayout, SiteKind

__all__ = [
    "LatticeGrid", "LBMSimulation", "SolverConfig", "SiteKind", "HaloLayout",
    "D2Q9", "D3Q19", "COLLISION_BGK", "COLLISION_MRT",
    "BodyCollaborator", "TransportCollaborator",
    "LBMError", "ConfigurationError", "HierarchyError", "SimulationDiverged",
    "CASES", "build_case", "lid_driven_cavity", "periodic_box", "refined_channel",
]
