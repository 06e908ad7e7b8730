import json
import logging
from importlib import resources
from typing import Dict

logger = logging.getLogger(__name__)

# Node specific maxmemory values published in the ElastiCache Redis parameter
# documentation, regenerate with the fetch-maxmemory tool
MAXMEMORY_FILE = "maxmemory.json"


def _load_bundled() -> Dict[str, int]:
    data = resources.files(__name__).joinpath(MAXMEMORY_FILE).read_text(
        encoding="utf-8"
    )
    values = {name: int(size) for name, size in json.loads(data).items()}
    logger.debug("Loaded %d maxmemory values from %s", len(values), MAXMEMORY_FILE)
    return values


maxmemory_values: Dict[str, int] = _load_bundled()
