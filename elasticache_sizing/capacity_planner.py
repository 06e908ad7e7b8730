import logging
from typing import Iterable
from typing import List

from elasticache_sizing.hardware import OfferingCatalog
from elasticache_sizing.interface import MatchResult
from elasticache_sizing.interface import Measurement
from elasticache_sizing.interface import NoFitError
from elasticache_sizing.interface import Offering
from elasticache_sizing.interface import SizingReport

logger = logging.getLogger(__name__)


def load_ratio(size_bytes: int, offering: Offering) -> float:
    return float(size_bytes) / float(offering.capacity_bytes) * 100


class CapacityPlanner:
    """Matches Redis memory readings to ElastiCache offerings

    Every measurement is matched on its own, servers never share a node.
    """

    def __init__(self, catalog: OfferingCatalog, max_load_percent: int = 80):
        if not 1 <= max_load_percent <= 100:
            raise ValueError("max-load must be in [1,100] percent range")
        self._catalog = catalog
        self._max_load_percent = max_load_percent

    @property
    def catalog(self) -> OfferingCatalog:
        return self._catalog

    @property
    def max_load_percent(self) -> int:
        return self._max_load_percent

    def _match(self, measurement: Measurement, metric: str, size: int) -> Offering:
        try:
            return self._catalog.find_cheapest_fit(size, self._max_load_percent)
        except NoFitError as exp:
            raise NoFitError(
                required_bytes=size,
                max_load_percent=self._max_load_percent,
                address=measurement.address,
                metric=metric,
            ) from exp

    def plan(self, measurement: Measurement) -> MatchResult:
        used_based = self._match(measurement, "used", measurement.used_bytes)
        peak_based = self._match(measurement, "peak", measurement.peak_bytes)
        logger.debug(
            "%s: used -> %s, peak -> %s",
            measurement.address,
            used_based.instance_type,
            peak_based.instance_type,
        )
        return MatchResult(
            measurement=measurement,
            used_based=used_based,
            peak_based=peak_based,
            used_ratio=load_ratio(measurement.used_bytes, used_based),
            peak_ratio=load_ratio(measurement.peak_bytes, peak_based),
        )

    def plan_all(self, measurements: Iterable[Measurement]) -> List[MatchResult]:
        """Plans every measurement in input order

        A single measurement that cannot be matched fails the whole batch,
        there are no partial results.
        """
        return [self.plan(m) for m in measurements]

    def report(
        self,
        measurements: Iterable[Measurement],
        region: str,
        reserved_memory_percent: int,
    ) -> SizingReport:
        return SizingReport(
            rows=self.plan_all(measurements),
            region=region,
            max_load_percent=self._max_load_percent,
            reserved_memory_percent=reserved_memory_percent,
        )
