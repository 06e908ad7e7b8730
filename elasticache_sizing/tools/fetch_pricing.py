import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any
from typing import Dict
from typing import List
from typing import Mapping
from typing import Optional
from typing import Union

import boto3
from botocore.loaders import create_loader

from elasticache_sizing.interface import MalformedOfferingError
from elasticache_sizing.interface import RawOffering

logger = logging.getLogger(__name__)

# The Price List API is only served from a few regions, prices for every
# region are available from any of them
PRICING_API_REGION = "us-east-1"


def region_description(region: str) -> str:
    """Maps a region code to the location name used by the Price List API

    For example us-east-1 -> "US East (N. Virginia)".
    """
    endpoints = create_loader().load_data("endpoints")
    for partition in endpoints["partitions"]:
        if region in partition["regions"]:
            return partition["regions"][region]["description"]
    raise ValueError(f"unsupported region {region!r}")


def pricing_filters(
    location: str, any_family: bool = False, any_generation: bool = False
) -> List[Dict[str, str]]:
    filters = [
        {"Type": "TERM_MATCH", "Field": "cacheEngine", "Value": "Redis"},
        {"Type": "TERM_MATCH", "Field": "location", "Value": location},
    ]
    if not any_family:
        filters.append(
            {
                "Type": "TERM_MATCH",
                "Field": "instanceFamily",
                "Value": "Memory optimized",
            }
        )
    if not any_generation:
        filters.append(
            {"Type": "TERM_MATCH", "Field": "currentGeneration", "Value": "yes"}
        )
    return filters


def extract_on_demand_price(price_data: Dict[str, Any]) -> Optional[str]:
    """First USD on-demand price of a product, as the API's decimal string"""
    if price_data.get("terms") is None:
        return None

    on_demand_terms = price_data["terms"].get("OnDemand", {})
    for term in on_demand_terms.values():
        for dim in term.get("priceDimensions", {}).values():
            usd = dim.get("pricePerUnit", {}).get("USD")
            if usd is not None:
                return usd
    return None


def to_raw_offering(price_data: Dict[str, Any]) -> RawOffering:
    attributes = price_data.get("product", {}).get("attributes", {})
    return RawOffering.model_construct(
        instance_type=attributes.get("instanceType"),
        memory=attributes.get("memory"),
        price_per_hour=extract_on_demand_price(price_data),
    )


def fetch_offerings(
    pricing_client: Any,
    location: str,
    any_family: bool = False,
    any_generation: bool = False,
) -> List[RawOffering]:
    """Pulls on-demand ElastiCache Redis prices for one location

    Records are returned unparsed, OfferingCatalog validates them.
    """
    paginator = pricing_client.get_paginator("get_products")
    filter_params = {
        "ServiceCode": "AmazonElastiCache",
        "Filters": pricing_filters(location, any_family, any_generation),
    }

    offerings = []
    for page in paginator.paginate(**filter_params):
        for price_item in page["PriceList"]:
            price_data = json.loads(price_item)
            offerings.append(to_raw_offering(price_data))
    logger.debug("Fetched %d offerings for %s", len(offerings), location)
    return offerings


def fetch_region_offerings(
    region: str, any_family: bool = False, any_generation: bool = False
) -> List[RawOffering]:
    pricing_client = boto3.client("pricing", region_name=PRICING_API_REGION)
    return fetch_offerings(
        pricing_client,
        region_description(region),
        any_family=any_family,
        any_generation=any_generation,
    )


def load_offerings_from_disk(path: Union[Path, str]) -> List[RawOffering]:
    """Reads a snapshot written by the fetch-pricing tool"""
    logger.debug("Loading offerings from: %s", path)
    with open(path, encoding="utf-8") as fd:
        data = json.load(fd)
    if not isinstance(data, list):
        raise ValueError(f"{path}: expected a list of offerings")

    offerings = []
    for record in data:
        if not isinstance(record, Mapping):
            raise MalformedOfferingError(
                None, f"snapshot entry must be an object, got {record!r}"
            )
        offerings.append(RawOffering.model_construct(**record))
    return offerings


def dump_offerings(offerings: List[RawOffering]) -> str:
    return json.dumps([o.model_dump() for o in offerings], indent=2)


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Fetch on-demand ElastiCache Redis pricing data."
    )
    parser.add_argument(
        "--region",
        type=str,
        default="us-east-1",
        help="AWS region (default: us-east-1)",
    )
    parser.add_argument(
        "--any-family",
        action="store_true",
        help="include all instance families, not only memory-optimized",
    )
    parser.add_argument(
        "--any-generation",
        action="store_true",
        help="include old generation instance types",
    )
    parser.add_argument(
        "--output-path",
        type=Path,
        help="file to write the snapshot to, stdout if not given",
    )
    args = parser.parse_args()

    offerings = fetch_region_offerings(
        args.region, any_family=args.any_family, any_generation=args.any_generation
    )
    output = dump_offerings(offerings)
    if args.output_path is None:
        print(output)
        return
    with open(args.output_path, "w", encoding="utf-8") as f:
        f.write(output)
        f.write("\n")
    print(
        f"{len(offerings)} offerings written to {args.output_path}", file=sys.stderr
    )


if __name__ == "__main__":
    main()
