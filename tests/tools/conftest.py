import json

import pytest


def _product(instance_type, memory, usd, sku="SKU"):
    return {
        "product": {
            "productFamily": "Cache Instance",
            "attributes": {
                "cacheEngine": "Redis",
                "currentGeneration": "Yes",
                "instanceFamily": "Memory optimized",
                "instanceType": instance_type,
                "location": "US East (N. Virginia)",
                "memory": memory,
                "vcpu": "2",
            },
            "sku": sku,
        },
        "serviceCode": "AmazonElastiCache",
        "terms": {
            "OnDemand": {
                f"{sku}.JRTCKXETXF": {
                    "offerTermCode": "JRTCKXETXF",
                    "priceDimensions": {
                        f"{sku}.JRTCKXETXF.6YS6EN2CT7": {
                            "unit": "Hrs",
                            "pricePerUnit": {"USD": usd},
                            "description": f"${usd} per On Demand {instance_type}",
                        }
                    },
                    "sku": sku,
                    "termAttributes": {},
                }
            }
        },
    }


@pytest.fixture
def price_list():
    return [
        _product("cache.r6g.xlarge", "26.32 GiB", "0.4110000000", sku="AAA"),
        _product("cache.r6g.large", "13.07 GiB", "0.2060000000", sku="BBB"),
    ]


@pytest.fixture
def get_products_response(price_list):
    return {
        "FormatVersion": "aws_v1",
        "PriceList": [json.dumps(p) for p in price_list],
    }
