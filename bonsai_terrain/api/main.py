"""FastAPI main application."""

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field
from typing import List, Optional, Tuple
import threading
import structlog

from ..config import Settings, settings
from ..db.connection import db
from ..db.snapshots import TerrainStore
from ..core.terrain_resource import TerrainConfigurationError
from ..core.workbench import PlacementRequest, TerrainWorkbench

# Configure logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="Bonsai Terrain API",
    description="Procedural terrain synthesis and deposit placement",
    version="0.1.0"
)

# The active workbench. Sync endpoints run in a thread pool, so every
# access to it holds _workbench_lock.
_workbench: Optional[TerrainWorkbench] = None
_workbench_lock = threading.Lock()


# Request/Response models
class TerrainCreateRequest(BaseModel):
    """Request to generate a new terrain pair."""

    seed_x: Optional[int] = Field(None, description="Noise seed offset along rows")
    seed_y: Optional[int] = Field(None, description="Noise seed offset along columns")
    randomize_seed: bool = Field(False, description="Draw a fresh seed pair")
    heightmap_resolution: Optional[int] = Field(None, ge=2, le=2049, description="Heightmap resolution")
    alphamap_resolution: Optional[int] = Field(None, ge=2, le=2048, description="Alphamap resolution")
    detail_resolution: Optional[int] = Field(None, ge=1, le=2048, description="Detail resolution")


class TerrainSummary(BaseModel):
    """Summary of the active terrain pair."""

    seed: Tuple[int, int]
    heightmap_resolution: int
    alphamap_resolution: int
    detail_resolution: int
    working_size: Tuple[float, float, float]
    world_size: Tuple[float, float, float]
    instance_count: int


class DepositRequest(BaseModel):
    """A deposit event on the working terrain."""

    anchor: Tuple[float, float, float] = Field(description="Anchor in working-terrain local space")
    prototype_index: int = Field(ge=0, description="Prototype of the deposited object")
    size_class: int = Field(description="Deposit magnitude, 1 to 3")
    is_organic: bool = Field(True, description="Organic or inorganic deposit")


class CreatureSpawnInfo(BaseModel):
    kind: str
    size_index: int
    positions: List[Tuple[float, float, float]]


class DepositResponse(BaseModel):
    aquatic_placed: bool
    instances_added: int
    instance_count: int
    creature_spawns: List[CreatureSpawnInfo]


class InstanceInfo(BaseModel):
    prototype_index: int
    position: Tuple[float, float, float]
    rotation: float
    height_scale: float
    width_scale: float


class ProgressInfo(BaseModel):
    terraform_index: int
    organic: int
    inorganic: int
    aquatic: int
    creatures: int
    sizes: List[int]
    organic_sizes: List[int]
    inorganic_sizes: List[int]
    aquatic_sizes: List[int]


def get_workbench() -> TerrainWorkbench:
    if _workbench is None:
        raise HTTPException(status_code=404, detail="No terrain generated")
    return _workbench


def _summary(workbench: TerrainWorkbench) -> TerrainSummary:
    return TerrainSummary(
        seed=workbench.seed,
        heightmap_resolution=workbench.world.heightmap_resolution,
        alphamap_resolution=workbench.world.alphamap_resolution,
        detail_resolution=workbench.world.detail_resolution,
        working_size=workbench.working.size,
        world_size=workbench.world.size,
        instance_count=workbench.world.instance_count,
    )


# Event handlers
@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    logger.info("Starting Bonsai Terrain API")
    db.initialize()
    logger.info("API startup complete")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup on shutdown."""
    logger.info("Shutting down Bonsai Terrain API")


# API endpoints
@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Bonsai Terrain API",
        "version": "0.1.0",
        "status": "running"
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    try:
        db.ping()
        return {"status": "healthy", "database": "connected"}
    except Exception as e:
        logger.error("Health check failed", error=str(e))
        raise HTTPException(status_code=503, detail="Service unhealthy")


@app.post("/terrain", response_model=TerrainSummary)
def create_terrain(request: TerrainCreateRequest):
    """Generate a new working/world terrain pair, replacing the active one."""
    global _workbench
    logger.info("Terrain generation requested", request=request.model_dump())

    overrides = {
        key: value
        for key, value in (
            ("heightmap_resolution", request.heightmap_resolution),
            ("alphamap_resolution", request.alphamap_resolution),
            ("detail_resolution", request.detail_resolution),
        )
        if value is not None
    }
    overrides["randomize_terrain_seed"] = request.randomize_seed
    config = Settings(**{**settings.model_dump(), **overrides})

    seed = None
    if request.seed_x is not None or request.seed_y is not None:
        seed = (
            request.seed_x if request.seed_x is not None else config.terrain_seed_x,
            request.seed_y if request.seed_y is not None else config.terrain_seed_y,
        )

    with _workbench_lock:
        try:
            _workbench = TerrainWorkbench(config=config, seed=seed).initialize()
        except TerrainConfigurationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return _summary(_workbench)


@app.get("/terrain", response_model=TerrainSummary)
def get_terrain():
    with _workbench_lock:
        return _summary(get_workbench())


@app.post("/terrain/deposits", response_model=DepositResponse)
def deposit(request: DepositRequest):
    """Place a deposit on the world terrain."""
    with _workbench_lock:
        workbench = get_workbench()
        try:
            result = workbench.deposit(
                PlacementRequest(
                    anchor_position=request.anchor,
                    prototype_index=request.prototype_index,
                    size_class=request.size_class,
                    is_organic=request.is_organic,
                )
            )
        except TerrainConfigurationError as e:
            logger.error("Deposit rejected", error=str(e))
            raise HTTPException(status_code=400, detail=str(e))

    return DepositResponse(
        aquatic_placed=result.aquatic_placed,
        instances_added=result.instances_added,
        instance_count=result.instance_count,
        creature_spawns=[
            CreatureSpawnInfo(kind=s.kind, size_index=s.size_index, positions=s.positions)
            for s in result.creature_spawns
        ],
    )


@app.get("/terrain/elevation")
def elevation(x: float, z: float):
    """World terrain ground height at a normalized planar position."""
    with _workbench_lock:
        return {"x": x, "z": z, "elevation": get_workbench().sample_elevation(x, z)}


@app.get("/terrain/instances", response_model=List[InstanceInfo])
def list_instances(offset: int = 0, limit: int = 1000):
    with _workbench_lock:
        instances = get_workbench().instances[offset:offset + limit]
    return [
        InstanceInfo(
            prototype_index=i.prototype_index,
            position=i.position,
            rotation=i.rotation,
            height_scale=i.height_scale,
            width_scale=i.width_scale,
        )
        for i in instances
    ]


@app.get("/terrain/progress", response_model=ProgressInfo)
def progress():
    with _workbench_lock:
        tracker = get_workbench().tracker.snapshot()
    return ProgressInfo(
        terraform_index=tracker.terraform_index,
        organic=tracker.organic,
        inorganic=tracker.inorganic,
        aquatic=tracker.aquatic,
        creatures=tracker.creatures,
        sizes=tracker.sizes,
        organic_sizes=tracker.organic_sizes,
        inorganic_sizes=tracker.inorganic_sizes,
        aquatic_sizes=tracker.aquatic_sizes,
    )


@app.post("/terrain/save")
def save_terrain(name: str = "terrain"):
    with _workbench_lock:
        workbench = get_workbench()
        snapshot_id = TerrainStore(db).save(workbench, name=name)
        return {"snapshot_id": snapshot_id, "instance_count": len(workbench.instances)}


@app.post("/terrain/restore/{snapshot_id}", response_model=TerrainSummary)
def restore_terrain(snapshot_id: str):
    global _workbench
    with _workbench_lock:
        try:
            _workbench = TerrainStore(db).restore(snapshot_id)
        except TerrainConfigurationError as e:
            raise HTTPException(status_code=404, detail=str(e))
        return _summary(_workbench)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
