from .config import (
    CoverArtConfig,
    EngineConfig,
    PlansConfig,
    ReleaseConfig,
    SearchConfig,
    UploadConfig,
    load_engine_config,
    load_engine_config_from_env,
)

__all__ = [
    "CoverArtConfig",
    "EngineConfig",
    "PlansConfig",
    "ReleaseConfig",
    "SearchConfig",
    "UploadConfig",
    "load_engine_config",
    "load_engine_config_from_env",
]
