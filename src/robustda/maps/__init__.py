"""
Maps package: point sets, map files and synthetic scenes
"""
from .pointset import PointSet, load_map_file, save_map_file, MIN_MAP_LANDMARKS
from .simulate import random_map, random_pose, simulate_observations

__all__ = [
    "PointSet", "load_map_file", "save_map_file", "MIN_MAP_LANDMARKS",
    "random_map", "random_pose", "simulate_observations",
]
