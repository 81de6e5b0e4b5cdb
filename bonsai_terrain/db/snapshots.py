"""
Save and restore terrain workbenches.

Grids are not stored: they are regenerated from the seed pair and the
generation settings. The seed pair, the settings, the progress counters and
the world terrain's instance list are persisted.

A restored workbench differs from the saved one in two ways. Layer splats
and detail stamps painted by the saved instances are not replayed, so the
ground cover is the freshly blended one. Placement randomness restarts from
``placement_seed``, so later deposits repeat the draws of a fresh session.
"""

import json
from dataclasses import asdict
from typing import Optional

import structlog

from ..config import Settings
from ..core.progress import ProgressTracker
from ..core.terrain_resource import ObjectInstance, TerrainConfigurationError
from ..core.workbench import TerrainWorkbench
from .connection import Database, db as default_db
from .models import PlacedInstance, TerrainSnapshot

logger = structlog.get_logger()

# Settings that only matter to the service, not to generation
_SERVICE_FIELDS = {"database_url", "api_host", "api_port", "debug", "log_level", "log_format"}


class TerrainStore:
    """Persists workbenches as seed + settings + progress + instance list."""

    def __init__(self, database: Optional[Database] = None):
        self.db = database or default_db

    def save(self, workbench: TerrainWorkbench, name: str = "terrain") -> str:
        """
        Save a workbench.

        Returns:
            The snapshot id
        """
        config = workbench.config.model_dump(mode="json", exclude=_SERVICE_FIELDS)
        # The saved seed pair is authoritative on restore
        config["randomize_terrain_seed"] = False

        snapshot = TerrainSnapshot(
            name=name,
            seed_x=workbench.seed[0],
            seed_y=workbench.seed[1],
            config_json=json.dumps(config),
            instance_count=len(workbench.instances),
            progress_json=json.dumps(asdict(workbench.tracker)),
        )
        snapshot.instances = [
            PlacedInstance(
                sequence=i,
                prototype_index=instance.prototype_index,
                x=instance.position[0],
                y=instance.position[1],
                z=instance.position[2],
                rotation=instance.rotation,
                height_scale=instance.height_scale,
                width_scale=instance.width_scale,
            )
            for i, instance in enumerate(workbench.instances)
        ]

        with self.db.get_session() as session:
            session.add(snapshot)
            session.flush()
            snapshot_id = snapshot.id

        logger.info("Saved terrain snapshot", snapshot_id=snapshot_id, instances=len(workbench.instances))
        return snapshot_id

    def restore(self, snapshot_id: str) -> TerrainWorkbench:
        """
        Rebuild a workbench from a snapshot.

        Raises:
            TerrainConfigurationError: If the snapshot does not exist
        """
        with self.db.get_session() as session:
            snapshot = session.get(TerrainSnapshot, snapshot_id)
            if snapshot is None:
                raise TerrainConfigurationError(f"terrain snapshot {snapshot_id} not found")

            config = Settings(**json.loads(snapshot.config_json))
            seed = (snapshot.seed_x, snapshot.seed_y)
            tracker = ProgressTracker(**json.loads(snapshot.progress_json or "{}"))
            instances = [
                ObjectInstance(
                    prototype_index=row.prototype_index,
                    position=(row.x, row.y, row.z),
                    rotation=row.rotation,
                    height_scale=row.height_scale,
                    width_scale=row.width_scale,
                )
                for row in snapshot.instances
            ]

        workbench = TerrainWorkbench(config=config, seed=seed, tracker=tracker).initialize()
        workbench.restore_instances(instances)
        logger.info("Restored terrain snapshot", snapshot_id=snapshot_id, instances=len(instances))
        return workbench
