import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
import yaml
from blinker import Signal
from platformdirs import user_config_dir


logger = logging.getLogger(__name__)


CONFIG_DIR = Path(user_config_dir("canvasforge"))
CONFIG_FILE = CONFIG_DIR / "config.yaml"


def getflag(name, default=False):
    default = "true" if default else "false"
    return os.environ.get(name, default).lower() in ("true", "1")


class Config:
    """Editor preferences that are kept between sessions."""

    def __init__(self):
        self.history_limit = 20
        self.arrange_padding = 10.0
        self.default_image_pos: Tuple[float, float] = (100.0, 100.0)
        self.duplicate_offset = 10.0
        self.changed = Signal()

    def set(self, key: str, value: Any):
        if not hasattr(self, key) or key == "changed":
            raise AttributeError(f"Unknown config key: {key}")
        if getattr(self, key) == value:
            return
        setattr(self, key, value)
        self.changed.send(self, key=key)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "history_limit": self.history_limit,
            "arrange_padding": self.arrange_padding,
            "default_image_pos": list(self.default_image_pos),
            "duplicate_offset": self.duplicate_offset,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        config = cls()
        config.history_limit = max(
            1, int(data.get("history_limit", config.history_limit))
        )
        config.arrange_padding = float(
            data.get("arrange_padding", config.arrange_padding)
        )
        pos = data.get("default_image_pos", config.default_image_pos)
        config.default_image_pos = (float(pos[0]), float(pos[1]))
        config.duplicate_offset = float(
            data.get("duplicate_offset", config.duplicate_offset)
        )
        return config


class ConfigManager:
    def __init__(self, filepath: Optional[Path] = None):
        self.filepath = Path(filepath or CONFIG_FILE)
        self.config: Config = Config()
        self.changed = Signal()

        self.load_config()

    def _on_config_changed(self, sender, **kwargs):
        self.changed.send(self, **kwargs)

    def save(self):
        self.filepath.parent.mkdir(parents=True, exist_ok=True)
        with open(self.filepath, "w") as f:
            yaml.safe_dump(self.config.to_dict(), f)
        logger.debug(f"Saved config to {self.filepath}")

    def load_config(self) -> Config:
        config = Config()
        if self.filepath.exists():
            try:
                with open(self.filepath, "r") as f:
                    data = yaml.safe_load(f)
                if data:
                    config = Config.from_dict(data)
            except (OSError, yaml.YAMLError, TypeError, ValueError) as e:
                logger.error(
                    f"Could not read config {self.filepath}: {e}",
                    exc_info=True,
                )
        self.config.changed.disconnect(self._on_config_changed)
        self.config = config
        self.config.changed.connect(self._on_config_changed)
        return config
