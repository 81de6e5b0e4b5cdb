"""
Core terrain generation and placement functionality.
"""

from .noise import NoiseSource
from .terrain_resource import (
    TerrainResource, ObjectInstance, TreePrototype, DetailPrototype, TerrainLayer,
    TerrainConfigurationError,
)
from .height_synthesizer import HeightSynthesizer, HeightConfig
from .layer_blender import LayerBlender, BlendConfig
from .scatter_placer import ScatterPlacer, ScatterOptions
from .resource_cloner import clone
from .progress import ProgressTracker
from .creature_spawns import CreatureSpawnPlanner, CreatureOptions, CreatureSpawn
from .workbench import TerrainWorkbench, PlacementRequest, DepositResult

__all__ = ['NoiseSource', 'TerrainResource', 'ObjectInstance', 'TreePrototype',
           'DetailPrototype', 'TerrainLayer', 'TerrainConfigurationError',
           'HeightSynthesizer', 'HeightConfig', 'LayerBlender', 'BlendConfig',
           'ScatterPlacer', 'ScatterOptions', 'clone', 'ProgressTracker',
           'CreatureSpawnPlanner', 'CreatureOptions', 'CreatureSpawn',
           'TerrainWorkbench', 'PlacementRequest', 'DepositResult']
