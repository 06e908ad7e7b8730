import json

import botocore.session
import pytest
from botocore.stub import Stubber

from elasticache_sizing.interface import MalformedOfferingError
from elasticache_sizing.interface import RawOffering
from elasticache_sizing.tools.fetch_pricing import dump_offerings
from elasticache_sizing.tools.fetch_pricing import extract_on_demand_price
from elasticache_sizing.tools.fetch_pricing import fetch_offerings
from elasticache_sizing.tools.fetch_pricing import load_offerings_from_disk
from elasticache_sizing.tools.fetch_pricing import pricing_filters
from elasticache_sizing.tools.fetch_pricing import region_description

LOCATION = "US East (N. Virginia)"


@pytest.fixture
def mock_pricing():
    return botocore.session.get_session().create_client(
        "pricing", region_name="us-east-1"
    )


def test_region_description():
    assert region_description("us-east-1") == LOCATION
    with pytest.raises(ValueError):
        region_description("moon-south-1")


def test_pricing_filters():
    filters = pricing_filters(LOCATION)
    by_field = {f["Field"]: f["Value"] for f in filters}
    assert by_field == {
        "cacheEngine": "Redis",
        "location": LOCATION,
        "instanceFamily": "Memory optimized",
        "currentGeneration": "yes",
    }
    assert all(f["Type"] == "TERM_MATCH" for f in filters)

    fields = [f["Field"] for f in pricing_filters(LOCATION, any_family=True)]
    assert "instanceFamily" not in fields
    assert "currentGeneration" in fields

    fields = [f["Field"] for f in pricing_filters(LOCATION, any_generation=True)]
    assert "instanceFamily" in fields
    assert "currentGeneration" not in fields


def test_extract_on_demand_price(price_list):
    assert extract_on_demand_price(price_list[0]) == "0.4110000000"
    assert extract_on_demand_price({"product": {}}) is None
    assert extract_on_demand_price({"terms": {"Reserved": {}}}) is None


def test_fetch_offerings(mock_pricing, get_products_response):
    stub = Stubber(mock_pricing)
    stub.add_response(
        "get_products",
        get_products_response,
        {"ServiceCode": "AmazonElastiCache", "Filters": pricing_filters(LOCATION)},
    )
    stub.activate()

    offerings = fetch_offerings(mock_pricing, LOCATION)

    stub.assert_no_pending_responses()
    assert offerings == [
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
    ]


def test_fetch_offerings_keeps_incomplete_products(mock_pricing):
    product = {"product": {"attributes": {"memory": "1 GiB"}}, "terms": {}}
    stub = Stubber(mock_pricing)
    stub.add_response(
        "get_products",
        {"FormatVersion": "aws_v1", "PriceList": [json.dumps(product)]},
        {
            "ServiceCode": "AmazonElastiCache",
            "Filters": pricing_filters(LOCATION, any_family=True),
        },
    )
    stub.activate()

    offerings = fetch_offerings(mock_pricing, LOCATION, any_family=True)
    assert len(offerings) == 1
    assert offerings[0].instance_type is None
    assert offerings[0].price_per_hour is None


def test_snapshot_round_trip(tmp_path):
    offerings = [
        RawOffering(
            instance_type="cache.m6g.large",
            memory="6.38 GiB",
            price_per_hour="0.1490000000",
        )
    ]
    path = tmp_path / "pricing.json"
    path.write_text(dump_offerings(offerings), encoding="utf-8")

    assert load_offerings_from_disk(path) == offerings


@pytest.mark.parametrize(
    "entry", ["cache.m6g.large", ["cache.m6g.large", "6.38 GiB"], None]
)
def test_snapshot_entry_must_be_an_object(tmp_path, entry):
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps([entry]), encoding="utf-8")

    with pytest.raises(MalformedOfferingError, match="must be an object"):
        load_offerings_from_disk(path)


def test_snapshot_must_be_a_list(tmp_path):
    path = tmp_path / "pricing.json"
    path.write_text(json.dumps({"instance_type": "cache.m6g.large"}), "utf-8")

    with pytest.raises(ValueError, match="expected a list"):
        load_offerings_from_disk(path)
