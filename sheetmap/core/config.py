from typing import Literal, Optional

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    debug: bool = True
    log_level: str = "INFO"
    log_cell_trace: bool = False  # DEBUG line for every mapped header
    date_default_dayfirst: bool = False  # Only consulted for ambiguous slash/dash dates
    map_parallel_max_workers: int = 4  # Controls parallel mapping chunk workers
    map_parallel_chunk_size: int = 1000

    # Same-priority label collisions while indexing the schema graph:
    # "last_wins" keeps the most recently discovered field, "drop" removes the label.
    label_conflict_policy: Literal["last_wins", "drop"] = "last_wins"

    # Optional JSON file with extra header substitutions / heuristics
    header_policy_path: Optional[str] = None

    # Schema snapshot used by the HTTP adapter
    schema_snapshot_path: Optional[str] = None

    model_config = ConfigDict(env_file=".env", extra="ignore")


settings = Settings()
