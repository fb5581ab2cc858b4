"""
YAML-backed application configuration.

    - Dot-path access: config.get("particles.count", 6000)
    - Optional override file deep-merged over the bundled config.yaml
    - Type and range checks for the fields the pipeline relies on.
      Problems are logged as warnings and the modules fall back to their
      own defaults.
"""

import copy
import logging
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


def _positive(value):
    return value > 0


def _unit_interval(value):
    return 0.0 <= value <= 1.0


def _non_negative(value):
    return value >= 0


# section -> field -> (expected type, optional range check)
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": (int, _non_negative),
        "width": (int, _positive),
        "height": (int, _positive),
        "fps": (int, _positive),
    },
    "mediapipe": {
        "min_detection_confidence": (float, _unit_interval),
        "min_tracking_confidence": (float, _unit_interval),
    },
    "gesture": {
        "pinch_min_ratio": (float, _non_negative),
        "pinch_max_ratio": (float, _positive),
        "lost_grace_ms": (int, _non_negative),
    },
    "particles": {
        "count": (int, _positive),
        "shape": (str, None),
        "lerp": (float, _unit_interval),
    },
    "render": {
        "camera_distance": (float, _positive),
        "fov_deg": (float, lambda v: 0.0 < v < 180.0),
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Return ``base`` with ``override`` merged in; nested dicts merge recursively."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


def _matches(value, expected_type) -> bool:
    if isinstance(value, bool):
        return expected_type is bool
    if expected_type is float:
        return isinstance(value, (int, float))
    return isinstance(value, expected_type)


def _read_yaml(path: Path) -> dict:
    with path.open("r") as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def _section(name: str):
    return property(lambda self: self._data.get(name, {}),
                    doc=f"The '{name}' section, or an empty dict.")


class Config:
    """Singleton configuration manager."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            instance = super().__new__(cls)
            instance._data = {}
            instance._problems = []
            cls._instance = instance
        return cls._instance

    def load(self, config_path=None, override_path=None):
        """Load config.yaml (or ``config_path``) and merge ``override_path`` over it."""
        path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
        try:
            self._data = _read_yaml(path)
            logger.info("Loaded config from %s", path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", path)
            self._data = {}

        if override_path:
            try:
                self._data = _deep_merge(self._data, _read_yaml(Path(override_path)))
                logger.info("Merged config overrides from %s", override_path)
            except FileNotFoundError:
                logger.warning("Override file not found: %s", override_path)

        self._problems = self._validate()
        return self

    def load_dict(self, data: dict):
        """Use an in-memory dict as the configuration (tests, embedding)."""
        self._data = copy.deepcopy(data or {})
        self._problems = self._validate()
        return self

    def _validate(self) -> list:
        """Check known fields and drop the ones that fail.

        A dropped field falls back to the default of whichever module reads
        it. Returns the list of problems found.
        """
        problems = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if section is None:
                problems.append(f"Missing config section: '{section_name}'")
                continue
            if not isinstance(section, dict):
                problems.append(f"Section '{section_name}' should be a mapping, "
                                f"got {type(section).__name__}")
                del self._data[section_name]
                continue

            for field_name, (expected_type, in_range) in fields.items():
                if field_name not in section:
                    continue
                value = section[field_name]
                key = f"{section_name}.{field_name}"
                if not _matches(value, expected_type):
                    problem = (f"{key}: expected {expected_type.__name__}, "
                               f"got {type(value).__name__} ({value!r})")
                elif in_range is not None and not in_range(value):
                    problem = f"{key}: value {value!r} out of range"
                else:
                    continue
                problems.append(f"{problem}, using default")
                del section[field_name]

        for problem in problems:
            logger.warning("Config validation: %s", problem)
        if not problems:
            logger.debug("Config validation passed")
        return problems

    def get(self, key_path: str, default=None):
        """Nested lookup with dot notation, e.g. 'camera.width'."""
        node = self._data
        for key in key_path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default
            node = node[key]
        return node

    def set(self, key_path: str, value):
        """Set a nested value, creating sections as needed (CLI overrides)."""
        *parents, leaf = key_path.split(".")
        node = self._data
        for key in parents:
            child = node.get(key)
            if not isinstance(child, dict):
                child = node[key] = {}
            node = child
        node[leaf] = value

    def get_section(self, section: str) -> dict:
        return self._data.get(section, {})

    @property
    def problems(self) -> list:
        """Problems found by the last load (fields already dropped)."""
        return list(self._problems)

    camera = _section("camera")
    mediapipe = _section("mediapipe")
    gesture = _section("gesture")
    particles = _section("particles")
    render = _section("render")
    performance = _section("performance")
    visualization = _section("visualization")

    @classmethod
    def reset(cls):
        """Drop the singleton (for testing)."""
        cls._instance = None
