"""
Deep copy of terrain resources.

Cloning copies every field of a TerrainResource explicitly: scalar settings
by value, grids element-wise, and instances one by one. Prototype and layer
catalogs are tuples of frozen dataclasses and are shared.
"""

from dataclasses import replace
from typing import List, Optional

import structlog

from .terrain_resource import ObjectInstance, TerrainResource

logger = structlog.get_logger()


def clone_instances(instances: List[ObjectInstance]) -> List[ObjectInstance]:
    """Copy an instance list; no instance is shared with the original."""
    return [replace(instance) for instance in instances]


def clone(template: TerrainResource, destination: Optional[TerrainResource] = None) -> TerrainResource:
    """
    Deep-copy a terrain resource.

    Args:
        template: Resource to copy from
        destination: Resource to overwrite in place; a new one is created when None

    Returns:
        The destination resource (the same object when one was passed)
    """
    dup = destination
    if dup is None:
        dup = TerrainResource(
            heightmap_resolution=template.heightmap_resolution,
            alphamap_resolution=template.alphamap_resolution,
            detail_resolution=template.detail_resolution,
            size=template.size,
            tree_prototypes=template.tree_prototypes,
            detail_prototypes=template.detail_prototypes,
            terrain_layers=template.terrain_layers,
        )

    dup.heightmap_resolution = template.heightmap_resolution
    dup.alphamap_resolution = template.alphamap_resolution
    dup.detail_resolution = template.detail_resolution
    dup.detail_resolution_per_patch = template.detail_resolution_per_patch
    dup.base_map_resolution = template.base_map_resolution
    dup.size = template.size

    dup.tree_prototypes = template.tree_prototypes
    dup.detail_prototypes = template.detail_prototypes
    dup.terrain_layers = template.terrain_layers

    dup.waving_grass_amount = template.waving_grass_amount
    dup.waving_grass_speed = template.waving_grass_speed
    dup.waving_grass_strength = template.waving_grass_strength
    dup.waving_grass_tint = template.waving_grass_tint

    dup.heights = template.heights.copy()
    dup.alphamaps = template.alphamaps.copy()
    dup.detail_layers = [layer.copy() for layer in template.detail_layers]
    dup.tree_instances = clone_instances(template.tree_instances)

    logger.debug(
        "Cloned terrain resource",
        in_place=destination is not None,
        resolution=dup.heightmap_resolution,
        instances=dup.instance_count,
    )
    return dup
