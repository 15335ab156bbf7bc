"""Configuration loader for the webcam gesture classifier.

Provides load_config(), validate_config(), and create_directories() helpers to
centralize YAML-based configuration loading and validation.
"""

from pathlib import Path
import yaml
import warnings
from typing import Dict, Any

SUPPORTED_ENCODINGS = ["png", "jpg", "jpeg", "bmp"]
SUPPORTED_DEVICES = ["auto", "cpu", "cuda"]


def load_config(config_path: str = "config/config.yaml") -> Dict[str, Any]:
    """Load and validate YAML configuration from the given path.

    Args:
        config_path: Relative or absolute path to the YAML configuration file.

    Returns:
        A validated configuration dictionary.

    Raises:
        FileNotFoundError: If the config file cannot be found.
        yaml.YAMLError: If parsing the YAML fails.
        ValueError: If validation fails.
    """
    p = Path(config_path)
    if not p.exists():
        raise FileNotFoundError(
            f"Configuration file not found at {config_path}. Pass --config or run from project root."
        )

    try:
        with p.open("r", encoding="utf-8") as f:
            cfg = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise yaml.YAMLError(f"Invalid YAML syntax in configuration file: {e}")

    if not isinstance(cfg, dict):
        raise ValueError("Configuration file did not contain a mapping at top level.")

    validate_config(cfg)
    return cfg


def validate_config(config: Dict[str, Any]) -> None:
    """Validate configuration dictionary and raise ValueError on issues.

    Checks presence of required keys, basic types and ranges. Optional keys
    are filled in with their defaults.
    """
    for key in ["paths", "capture", "inference"]:
        if key not in config:
            raise ValueError(f"Missing required configuration key: {key}")
        if not isinstance(config[key], dict):
            raise ValueError(f"Invalid configuration for '{key}': expected a mapping")

    # Paths
    paths = config["paths"]
    for key in ["model", "metadata", "logs"]:
        if key not in paths:
            raise ValueError(f"Missing required configuration key: paths.{key}")
        if not isinstance(paths[key], str) or not paths[key].strip():
            raise ValueError(f"Invalid value for paths.{key}: expected non-empty string, got {repr(paths[key])}")

    # Capture
    cap = config["capture"]
    for key in ["image_size", "interval_ms"]:
        if key not in cap:
            raise ValueError(f"Missing required configuration key: capture.{key}")

    if not isinstance(cap["image_size"], int) or isinstance(cap["image_size"], bool) or cap["image_size"] <= 0:
        raise ValueError(f"Invalid value for capture.image_size: expected positive int, got {cap['image_size']}")
    if not isinstance(cap["interval_ms"], (int, float)) or isinstance(cap["interval_ms"], bool) or cap["interval_ms"] <= 0:
        raise ValueError(f"Invalid value for capture.interval_ms: expected positive number, got {cap['interval_ms']}")

    cap.setdefault("camera_index", 0)
    if not isinstance(cap["camera_index"], int) or isinstance(cap["camera_index"], bool) or cap["camera_index"] < 0:
        raise ValueError(f"Invalid value for capture.camera_index: expected non-negative int, got {cap['camera_index']}")

    cap.setdefault("encoding", "png")
    if str(cap["encoding"]).lower() not in SUPPORTED_ENCODINGS:
        raise ValueError(f"Invalid value for capture.encoding: expected one of {SUPPORTED_ENCODINGS}, got {cap['encoding']}")
    cap["encoding"] = str(cap["encoding"]).lower()

    cap.setdefault("timeout_s", None)
    timeout = cap["timeout_s"]
    if timeout is not None and (not isinstance(timeout, (int, float)) or isinstance(timeout, bool) or timeout <= 0):
        raise ValueError(f"Invalid value for capture.timeout_s: expected positive number or null, got {timeout}")

    # Inference
    inf = config["inference"]
    inf.setdefault("device", "auto")
    inf.setdefault("channels_first", True)
    inf.setdefault("apply_softmax", False)

    if inf["device"] not in SUPPORTED_DEVICES:
        raise ValueError(f"Invalid value for inference.device: expected one of {SUPPORTED_DEVICES}, got {inf['device']}")
    if not isinstance(inf["channels_first"], bool):
        raise ValueError("Invalid value for inference.channels_first: expected boolean")
    if not isinstance(inf["apply_softmax"], bool):
        raise ValueError("Invalid value for inference.apply_softmax: expected boolean")


def create_directories(config: Dict[str, Any]) -> None:
    """Create the log directory listed in config['paths'].

    Any OSError raised while creating the directory will be caught and a warning will be emitted.
    """
    logs = config.get("paths", {}).get("logs")
    if not logs:
        return
    try:
        Path(logs).mkdir(parents=True, exist_ok=True)
    except OSError as e:
        warnings.warn(f"Could not create directory for paths.logs at {logs}: {e}")
