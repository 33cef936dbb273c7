"""
Tripod Shell - procedural voxel CSG for a 3D-printable organic tripod.

Construction stages, each folding into one shell accumulator:
- Legs: chained tapered beams + joint spheres + feet
- Dome: closed bowl with EDF inlets (or legacy open dome)
- Flow: plenum + ducts, hollowed into thin walls
- Features: balls, clearance sockets, hollow tapered nozzles
- Reinforcement: nozzle base thickening, mounting bosses
- Finishing: dilate/erode smoothing, marching cubes, STL export

Usage:
    python -m tripod_shell.run_all --source ref/source.stl
"""

__version__ = "3.0.0"
