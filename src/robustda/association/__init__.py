"""
Data association package
"""
from .pool import Correspondence, CorrespondencePool, CorrespondenceSet, build_correspondences
from .belief import PoseHypothesis, PoseBelief
from .fusion import FusionParams, HypothesisFuser, fuse_hypotheses, is_same_mode, merge_pair
from .engine import RansacEngine, EngineReport, as_generator
from .pipeline import AssociationResult, associate, association_vector

__all__ = [
    "Correspondence", "CorrespondencePool", "CorrespondenceSet", "build_correspondences",
    "PoseHypothesis", "PoseBelief",
    "FusionParams", "HypothesisFuser", "fuse_hypotheses", "is_same_mode", "merge_pair",
    "RansacEngine", "EngineReport", "as_generator",
    "AssociationResult", "associate", "association_vector",
]
