"""Reads and writes the caller-held snapshot of the previous build composition."""

from pathlib import Path

import structlog
from ruamel.yaml import YAML

from jitrub.exceptions import ConfigurationError

logger: structlog.stdlib.BoundLogger = structlog.get_logger(__name__)

yaml = YAML(typ="safe")


def load_snapshot(path: Path) -> list[str] | None:
    """Load the branch names of the previous build, or None if there is no snapshot yet."""
    if not path.exists():
        logger.info("No snapshot found", path=str(path))
        return None
    with open(path, encoding="utf-8") as f:
        data = yaml.load(f) or {}
    if not isinstance(data, dict) or not isinstance(data.get("branches", []), list):
        raise ConfigurationError(f"Snapshot file {path} must contain a 'branches' list")
    return [str(branch) for branch in data.get("branches", [])]


def save_snapshot(path: Path, branches: list[str]) -> None:
    """Write the branch names of the current build."""
    yaml_dumper = YAML()
    yaml_dumper.default_flow_style = False
    yaml_dumper.explicit_start = True
    with open(path, "w", encoding="utf-8") as f:
        yaml_dumper.dump({"branches": list(branches)}, f)
    logger.info("Saved snapshot", path=str(path), count=len(branches))
