"""Configuration management for the search engine using Hydra.

All configuration is loaded from YAML files in conf/game_search/.
This module provides typed config objects and validation.
"""

from pathlib import Path

from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field

from game_search.embedding import EmbeddingConfig


class IndexConfig(BaseModel):
    """Vector index configuration.

    Attributes:
        url: Base URL of the Qdrant REST API
        collection: Collection name; empty disables vector indexing entirely
        api_key: Optional API key for authenticated deployments
        timeout_seconds: Per-request timeout for every Qdrant call
        distance: Similarity metric used when creating the collection
    """

    url: str = "http://localhost:6333"
    collection: str = "wanna2play_games"
    api_key: str | None = None
    timeout_seconds: float = Field(default=10.0, ge=0.1, le=300.0)
    distance: str = Field(default="Cosine", pattern="^(Cosine|Dot|Euclid|Manhattan)$")


class SearchConfig(BaseModel):
    """Search orchestration limits.

    Attributes:
        default_limit: Result count used when the caller gives none
        semantic_limit_max: Upper bound on nearest-neighbour fan-out
    """

    default_limit: int = Field(default=60, ge=1, le=200)
    semantic_limit_max: int = Field(default=60, ge=1, le=200)


class StoreConfig(BaseModel):
    """Record store configuration.

    Attributes:
        sqlite_path: Path of the SQLite database file
    """

    sqlite_path: str = "data/wanna2play.sqlite"


class GameSearchConfig(BaseModel):
    """Top-level configuration for the search system."""

    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)


def default_config_dir() -> Path:
    """Return conf/game_search/ relative to the repo root."""
    repo_root = Path(__file__).parent.parent.parent
    return repo_root / "conf" / "game_search"


def load_config(
    config_name: str = "default",
    config_path: str | Path | None = None,
    overrides: list[str] | None = None,
) -> GameSearchConfig:
    """Load search configuration from Hydra YAML files.

    Args:
        config_name: Name of config file (without .yaml extension)
        config_path: Path to config directory (defaults to conf/game_search/)
        overrides: List of config overrides (e.g., ["index.collection=games_v2"])

    Returns:
        Validated configuration object

    Example:
        >>> config = load_config("default")
        >>> config.embedding.model
        'nomic-embed-text'

        >>> config = load_config("default", overrides=["search.default_limit=20"])
        >>> config.search.default_limit
        20
    """
    if config_path is None:
        config_path = default_config_dir()

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config directory not found: {config_path}\n" f"Create it with: mkdir -p {config_path}"
        )

    with initialize_config_dir(
        config_dir=str(config_path), version_base=None, job_name="game_search"
    ):
        cfg: DictConfig = compose(config_name=config_name, overrides=overrides or [])

    # Convert OmegaConf to dict and validate with Pydantic
    config_dict = OmegaConf.to_container(cfg, resolve=True)
    return GameSearchConfig(**config_dict)  # type: ignore


def create_default_config() -> dict[str, dict[str, object]]:
    """Create a default configuration dictionary for bootstrapping.

    Returns:
        Dictionary suitable for writing to YAML

    Example:
        >>> from omegaconf import OmegaConf
        >>> OmegaConf.save(create_default_config(), "conf/game_search/default.yaml")
    """
    return {
        "embedding": {
            "provider": "ollama",
            "base_url": "${oc.env:OLLAMA_BASE_URL,''}",
            "model": "${oc.env:OLLAMA_EMBED_MODEL,nomic-embed-text}",
            "timeout_seconds": 12.0,
            "api_key": "${oc.env:OPENAI_API_KEY,null}",
        },
        "index": {
            "url": "${oc.env:QDRANT_URL,'http://localhost:6333'}",
            "collection": "${oc.env:QDRANT_COLLECTION,wanna2play_games}",
            "api_key": "${oc.env:QDRANT_API_KEY,null}",
            "timeout_seconds": 10.0,
            "distance": "Cosine",
        },
        "search": {
            "default_limit": 60,
            "semantic_limit_max": 60,
        },
        "store": {
            "sqlite_path": "${oc.env:SQLITE_PATH,data/wanna2play.sqlite}",
        },
    }
