import json
import logging
import math
import os
from bisect import bisect_left
from pathlib import Path
from typing import Any
from typing import Dict
from typing import Iterable
from typing import Mapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Union

import numpy as np
from pydantic import ValidationError

from elasticache_sizing.interface import GIB_IN_BYTES
from elasticache_sizing.interface import MalformedOfferingError
from elasticache_sizing.interface import NoFitError
from elasticache_sizing.interface import Offering
from elasticache_sizing.interface import RawOffering

logger = logging.getLogger(__name__)

MEMORY_SUFFIX = " GiB"


def parse_memory(text: Any, instance_type: Optional[str] = None) -> int:
    """Parses an advertised node size like "12.93 GiB" into bytes

    The pricing API only ever quotes GiB with a couple of decimals, so the
    number is read as a 32 bit float the same way AWS tooling does and then
    truncated to whole bytes.
    """
    if not isinstance(text, str) or not text.endswith(MEMORY_SUFFIX):
        raise MalformedOfferingError(
            instance_type,
            f'unsupported memory spec format, want "XXX GiB", got {text!r}',
        )
    number = text[: -len(MEMORY_SUFFIX)]
    try:
        gibs = float(np.float32(number))
    except ValueError as exp:
        raise MalformedOfferingError(instance_type, str(exp)) from exp
    if not math.isfinite(gibs) or gibs <= 0:
        raise MalformedOfferingError(
            instance_type, f"unexpected memory value {gibs} ({text!r})"
        )
    size = int(gibs * GIB_IN_BYTES)
    if size <= 0:
        raise MalformedOfferingError(
            instance_type, f"memory value {text!r} is less than a byte"
        )
    return size


def parse_price(text: Any, instance_type: Optional[str] = None) -> float:
    if not isinstance(text, str):
        raise MalformedOfferingError(
            instance_type, f"price must be a decimal string, got {text!r}"
        )
    try:
        price = float(text)
    except ValueError as exp:
        raise MalformedOfferingError(instance_type, str(exp)) from exp
    if not math.isfinite(price) or price < 0:
        raise MalformedOfferingError(instance_type, f"unexpected price {text!r}")
    return price


def reserve(capacity: int, reserved_percent: int) -> int:
    """Takes reserved_percent out of capacity

    Divides by 100 before multiplying so results match ElastiCache's own
    arithmetic for sizes that are not a multiple of 100.
    """
    return capacity - (capacity // 100 * reserved_percent)


def fits(offering: Offering, required_bytes: int, max_load_percent: int) -> bool:
    return offering.capacity_bytes // 100 * max_load_percent >= required_bytes


def _to_raw(record: Union[RawOffering, Mapping[str, Any]]) -> RawOffering:
    if isinstance(record, RawOffering):
        return record
    try:
        return RawOffering.model_validate(record)
    except ValidationError as exp:
        instance_type = None
        if isinstance(record, Mapping):
            instance_type = record.get("instance_type")
        raise MalformedOfferingError(
            instance_type if isinstance(instance_type, str) else None,
            str(exp),
        ) from exp


def build_offering(
    record: Union[RawOffering, Mapping[str, Any]],
    reserved_percent: int,
    known_capacities: Mapping[str, int],
) -> Optional[Offering]:
    """Returns None when nothing is left after reserving memory"""
    raw = _to_raw(record)
    if not isinstance(raw.instance_type, str) or not raw.instance_type:
        raise MalformedOfferingError(
            None, f"instance type is missing or not a string: {raw.instance_type!r}"
        )

    memory = parse_memory(raw.memory, raw.instance_type)
    price = parse_price(raw.price_per_hour, raw.instance_type)

    exact = known_capacities.get(raw.instance_type)
    if exact is not None:
        capacity = reserve(exact, reserved_percent)
    else:
        capacity = reserve(memory, reserved_percent)
        logger.info(
            "exact maxmemory value for instance %r is unknown, using instance "
            "size corrected to reserved-memory-percent=%d",
            raw.instance_type,
            reserved_percent,
        )

    if capacity <= 0:
        logger.warning(
            "Offering %s has no memory left at reserved-memory-percent=%d,"
            " skipping",
            raw.instance_type,
            reserved_percent,
        )
        return None

    return Offering(
        instance_type=raw.instance_type,
        capacity_bytes=capacity,
        price_per_hour=price,
    )


class OfferingCatalog:
    """Offerings sorted ascending by usable capacity

    Capacity stands in for price: within one filtered family larger nodes
    cost more, so the first offering that fits is taken as the cheapest one.
    Prices are never compared. Offerings with equal capacity keep the order
    the pricing source returned them in.
    """

    def __init__(self, offerings: Iterable[Offering]):
        self._offerings: Tuple[Offering, ...] = tuple(
            sorted(offerings, key=lambda o: o.capacity_bytes)
        )

    @classmethod
    def from_raw(
        cls,
        records: Iterable[Union[RawOffering, Mapping[str, Any]]],
        reserved_percent: int,
        known_capacities: Optional[Mapping[str, int]] = None,
    ) -> "OfferingCatalog":
        if not 0 <= reserved_percent <= 100:
            raise ValueError("reserved-memory-percent must be in [0,100] range")
        if known_capacities is None:
            known_capacities = {}

        offerings = []
        for record in records:
            offering = build_offering(record, reserved_percent, known_capacities)
            if offering is not None:
                offerings.append(offering)
        return cls(offerings)

    @property
    def offerings(self) -> Sequence[Offering]:
        return self._offerings

    def __len__(self) -> int:
        return len(self._offerings)

    def __iter__(self):
        return iter(self._offerings)

    def find_cheapest_fit(self, required_bytes: int, max_load_percent: int) -> Offering:
        if not 1 <= max_load_percent <= 100:
            raise ValueError("max-load must be in [1,100] percent range")

        # Load adjusted capacity never decreases along the catalog, so the
        # leftmost position where it reaches required_bytes is the first fit
        i = bisect_left(
            self._offerings,
            required_bytes,
            key=lambda o: o.capacity_bytes // 100 * max_load_percent,
        )
        if i < len(self._offerings):
            return self._offerings[i]
        raise NoFitError(required_bytes, max_load_percent)


def load_known_capacities(
    path: Union[Path, Optional[str]] = os.environ.get("MAXMEMORY_PATH"),
) -> Dict[str, int]:
    """Node type -> exact maxmemory bytes

    Starts from the table bundled with the package, entries from path (if
    given) replace bundled ones.
    """
    from elasticache_sizing.hardware.profiles import maxmemory_values

    capacities = dict(maxmemory_values)
    if path is None:
        return capacities

    logger.debug("Loading maxmemory overrides from: %s", path)
    with open(path, encoding="utf-8") as fd:
        overrides = json.load(fd)
    for instance_type, value in overrides.items():
        capacities[instance_type] = int(value)
    return capacities
