from __future__ import annotations

from datetime import datetime
from datetime import timezone
from typing import List
from typing import Optional

from pydantic import BaseModel
from pydantic import computed_field
from pydantic import ConfigDict
from pydantic import Field

GIB_IN_BYTES = 1024 * 1024 * 1024
MIB_IN_BYTES = 1024 * 1024
# Prices are quoted per hour, months are always 31 days long here
HOURS_PER_MONTH = 24 * 31


def bytes_to_gib(size_bytes: int) -> float:
    """Truncates to whole MiB first, which is how sizes are displayed"""
    return float(size_bytes >> 20) / 1024


###############################################################################
#                     Errors raised while building a plan                     #
###############################################################################


class MalformedOfferingError(ValueError):
    """A pricing record could not be turned into an Offering"""

    def __init__(self, instance_type: Optional[str], reason: str):
        self.instance_type = instance_type
        self.reason = reason
        super().__init__(f"malformed offering {instance_type!r}: {reason}")


class NoFitError(ValueError):
    """No offering in the catalog can hold the required number of bytes"""

    def __init__(
        self,
        required_bytes: int,
        max_load_percent: int,
        address: Optional[str] = None,
        metric: Optional[str] = None,
    ):
        self.required_bytes = required_bytes
        self.max_load_percent = max_load_percent
        self.address = address
        self.metric = metric

        size = f"{bytes_to_gib(required_bytes):.1f} GiB"
        if address is None:
            msg = f"no offering fits {size} at {max_load_percent}% max load"
        else:
            msg = (
                f"no matching offering for {address!r} with {size} of "
                f"{metric} memory at {max_load_percent}% max load"
            )
        super().__init__(msg)


###############################################################################
#              Models (structs) for offerings and measurements                #
###############################################################################


class RawOffering(BaseModel):
    """One unparsed record as returned by the pricing source

    Fields are left optional so that a missing value surfaces as a
    MalformedOfferingError from the catalog rather than a validation error.
    """

    instance_type: Optional[str] = None
    # Advertised node memory, e.g. "12.93 GiB"
    memory: Optional[str] = None
    # On-demand USD per hour as a decimal string, e.g. "0.2160000000"
    price_per_hour: Optional[str] = None

    model_config = ConfigDict(frozen=True)


class Offering(BaseModel):
    """A purchasable cache node with its usable memory and price

    capacity_bytes is what the cache can hold after reserved memory has been
    taken out, not the advertised node size.
    """

    instance_type: str
    capacity_bytes: int = Field(gt=0)
    price_per_hour: float = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @computed_field(return_type=float)  # type: ignore
    @property
    def price_per_month(self):
        return self.price_per_hour * HOURS_PER_MONTH

    @property
    def memory_gib(self) -> float:
        return bytes_to_gib(self.capacity_bytes)


class Measurement(BaseModel):
    """Memory readings taken from one running Redis server"""

    address: str
    used_bytes: int = Field(ge=0)
    peak_bytes: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def used_gib(self) -> float:
        return bytes_to_gib(self.used_bytes)

    @property
    def peak_gib(self) -> float:
        return bytes_to_gib(self.peak_bytes)


class MatchResult(BaseModel):
    measurement: Measurement
    used_based: Offering
    peak_based: Offering
    # Percent of the matched offering's capacity taken by the measurement
    used_ratio: float
    peak_ratio: float

    model_config = ConfigDict(frozen=True)


class SizingReport(BaseModel):
    """Everything presentation needs to render a run"""

    rows: List[MatchResult] = []
    region: str = ""
    max_load_percent: int = 80
    reserved_memory_percent: int = 25
    generated_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)
    )

    model_config = ConfigDict(frozen=True)

    @computed_field(return_type=float)  # type: ignore
    @property
    def used_based_total(self):
        return sum((row.used_based.price_per_month for row in self.rows), 0.0)

    @computed_field(return_type=float)  # type: ignore
    @property
    def peak_based_total(self):
        return sum((row.peak_based.price_per_month for row in self.rows), 0.0)
