from pathlib import Path
from typing import Tuple
from dotenv import dotenv_values
from pydantic import Field
from pydantic_settings import BaseSettings

import os

# Explicitly load .env for local/dev environments only if values are missing from the environment
BASE_DIR = Path(__file__).resolve().parent.parent.parent
env_file = BASE_DIR / ".env"

if env_file.exists():
    file_env = dotenv_values(env_file)
    missing_keys = {k: v for k, v in file_env.items() if k not in os.environ}
    for k, v in missing_keys.items():
        os.environ[k] = v


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # Database Configuration
    database_url: str = Field(default="sqlite:///./bonsai_terrain.db", description="SQLAlchemy database URL")

    # API Configuration
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")
    debug: bool = Field(default=False, description="Enable debug mode")

    # Logging Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (e.g., plain, json)")

    # Seeds
    terrain_seed_x: int = Field(default=100, description="Noise seed offset along the heightmap rows")
    terrain_seed_y: int = Field(default=100, description="Noise seed offset along the heightmap columns")
    randomize_terrain_seed: bool = Field(default=False, description="Draw a fresh seed pair at creation")
    placement_seed: int = Field(default=0, description="Seed for placement jitter and stamping")

    # Template resource
    heightmap_resolution: int = Field(default=257, description="Heightmap resolution (R x R)")
    alphamap_resolution: int = Field(default=256, description="Alphamap resolution (A x A)")
    detail_resolution: int = Field(default=256, description="Detail density resolution (D x D)")
    detail_resolution_per_patch: int = Field(default=16, description="Detail patch size")
    base_map_resolution: int = Field(default=512, description="Base map resolution")
    template_size: Tuple[float, float, float] = Field(default=(300.0, 300.0, 300.0), description="Template terrain extents")

    # Height synthesis
    tile_scale: float = Field(default=4.0, description="Noise tiling across the heightmap")
    max_hill_height: float = Field(default=300.0, description="Highest hill height")
    min_hill_height: float = Field(default=0.0, description="Lowest hill height")
    margin_x: int = Field(default=0, description="Untouched border band along rows")
    margin_y: int = Field(default=0, description="Untouched border band along columns")

    # Layer blending
    layer_cutoff_2: float = Field(default=0.45, description="Shore band upper cutoff")
    layer_cutoff_3: float = Field(default=1.15, description="Rock cutoff")
    waterline: float = Field(default=0.35, description="Normalized waterline, also the seabed cutoff")

    # Two-tier presentation
    working_size: Tuple[float, float, float] = Field(default=(3.0, 1.0, 3.0), description="Working terrain extents")
    world_size: Tuple[float, float, float] = Field(default=(60.0, 20.0, 60.0), description="World terrain extents")
    world_origin: Tuple[float, float, float] = Field(default=(-40.0, -7.0, 20.0), description="World terrain origin")

    # Placement
    waterline_elevation: float = Field(default=3.3, description="World elevation below which instances turn aquatic")
    deep_water_elevation: float = Field(default=2.0, description="World elevation of the deep aquatic band")
    max_placement_attempts: int = Field(default=250, description="Proposals per underground-checked placement")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "BONSAI_"
        extra = "ignore"


# Instantiate singleton settings object
settings = Settings()
