import pytest

from elasticache_sizing.hardware import OfferingCatalog
from elasticache_sizing.interface import Measurement
from elasticache_sizing.interface import Offering
from elasticache_sizing.interface import RawOffering


@pytest.fixture
def small_catalog() -> OfferingCatalog:
    """Two offerings, 1 GB for 0.10/hr and 2 GB for 0.15/hr"""
    return OfferingCatalog(
        [
            Offering(
                instance_type="B", capacity_bytes=2_000_000_000, price_per_hour=0.15
            ),
            Offering(
                instance_type="A", capacity_bytes=1_000_000_000, price_per_hour=0.10
            ),
        ]
    )


@pytest.fixture
def raw_offerings():
    return [
        RawOffering(
            instance_type="cache.r6g.xlarge",
            memory="26.32 GiB",
            price_per_hour="0.4110000000",
        ),
        RawOffering(
            instance_type="cache.r6g.large",
            memory="13.07 GiB",
            price_per_hour="0.2060000000",
        ),
        RawOffering(
            instance_type="cache.r7g.large",
            memory="13.07 GiB",
            price_per_hour="0.2190000000",
        ),
    ]


@pytest.fixture
def measurements():
    return [
        Measurement(
            address="10.0.0.1:6379", used_bytes=500_000_000, peak_bytes=700_000_000
        ),
        Measurement(
            address="10.0.0.2:6379", used_bytes=900_000_000, peak_bytes=1_500_000_000
        ),
    ]
