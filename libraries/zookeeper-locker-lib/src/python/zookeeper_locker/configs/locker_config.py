"""Loading :class:`ZkOptions` from YAML configuration files.

Expected layout::

    zookeeper:
      locker:
        connection_string: "zk1:2181,zk2:2181"
        session_timeout: 30
        can_be_read_only: false
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..exceptions import InvalidOptionsError
from ..models import ZkOptions

logger = logging.getLogger(__name__)


def _read_yaml(path: Path) -> dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        return yaml.safe_load(handle) or {}


def load_options(path: str | Path) -> ZkOptions:
    """Load locker options from the ``zookeeper.locker`` section of *path*.

    Raises:
        FileNotFoundError: If *path* does not exist.
        InvalidOptionsError: If the section is missing or invalid.
    """
    resolved = Path(path).expanduser().resolve()
    if not resolved.exists():
        raise FileNotFoundError(f"Config file not found at: {resolved}")

    raw_config = _read_yaml(resolved)
    zookeeper_config = raw_config.get("zookeeper") or {}
    section = zookeeper_config.get("locker") if isinstance(zookeeper_config, dict) else None
    if not isinstance(section, dict):
        raise InvalidOptionsError(f"missing 'zookeeper.locker' section in {resolved}")

    try:
        options = ZkOptions.model_validate(section)
    except ValidationError as e:
        raise InvalidOptionsError(str(e)) from e

    logger.info("Locker options loaded from %s", resolved)
    return options
