from config.settings import (
    CONFIG_FILENAME,
    FixerRule,
    LuatsConfig,
    load_config,
    resolve_output_dir,
)

__all__ = [
    "CONFIG_FILENAME",
    "FixerRule",
    "LuatsConfig",
    "load_config",
    "resolve_output_dir",
]
