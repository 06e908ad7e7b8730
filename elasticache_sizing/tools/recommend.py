"""Suggests ElastiCache Redis node types that can hold existing Redis servers

Reads server addresses, polls each server for used and peak memory, fetches
on-demand prices for the region and prints the smallest node type that fits
every server at the requested max load.
"""
import argparse
import logging
import sys
import threading
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from elasticache_sizing.capacity_planner import CapacityPlanner
from elasticache_sizing.hardware import load_known_capacities
from elasticache_sizing.hardware import OfferingCatalog
from elasticache_sizing.interface import Measurement
from elasticache_sizing.interface import RawOffering
from elasticache_sizing.interface import SizingReport
from elasticache_sizing.report import render_html_report
from elasticache_sizing.report import write_csv_report
from elasticache_sizing.report import write_text_report
from elasticache_sizing.stats import fetch_all_stats
from elasticache_sizing.stats import gather
from elasticache_sizing.stats import read_addresses
from elasticache_sizing.tools.fetch_pricing import fetch_region_offerings
from elasticache_sizing.tools.fetch_pricing import load_offerings_from_disk
from elasticache_sizing.tools.fetch_pricing import region_description

logger = logging.getLogger(__name__)

DEFAULT_RESERVED_MEMORY_PERCENT = 25

AVAILABLE_MEMORY_LINK = (
    "https://aws.amazon.com/premiumsupport/knowledge-center/"
    "available-memory-elasticache-redis-node/"
)

RESERVED_MEMORY_PERCENT_NOTE = f"""
Please see AWS documentation regarding reserved-memory-percent if you decide to change it:

{AVAILABLE_MEMORY_LINK}
https://docs.aws.amazon.com/AmazonElastiCache/latest/red-ug/ParameterGroups.Redis.html#ParameterGroups.Redis.3-2-4.New

> The percent of a node's memory reserved for nondata use. By default, the
> Redis data footprint grows until it consumes all of the node's memory. If
> this occurs, then node performance will likely suffer due to excessive
> memory paging. By reserving memory, you can set aside some of the available
> memory for non-Redis purposes to help reduce the amount of paging.

> This parameter is specific to ElastiCache, and is not part of the standard
> Redis distribution.
"""


class RunArgs(BaseModel):
    region: str = Field(default="us-east-1", min_length=1)
    redises: Path
    html: Optional[Path] = None
    csv: bool = False
    any_generation: bool = False
    any_family: bool = False
    max_load: int = Field(default=80, ge=1, le=100)
    reserved_memory_percent: int = Field(
        default=DEFAULT_RESERVED_MEMORY_PERCENT, ge=0, le=100
    )
    pricing_file: Optional[Path] = None


def _offerings_source(args: RunArgs) -> Callable[[], List[RawOffering]]:
    pricing_file = args.pricing_file
    if pricing_file is not None:
        return lambda: load_offerings_from_disk(pricing_file)
    return lambda: fetch_region_offerings(
        args.region, any_family=args.any_family, any_generation=args.any_generation
    )


def collect(
    addresses: Sequence[str],
    fetch_offerings: Callable[[], List[RawOffering]],
    reserved_memory_percent: int,
    fetch_stats: Optional[Callable[..., List[Measurement]]] = None,
) -> Tuple[List[Measurement], OfferingCatalog]:
    """Polls servers and builds the catalog concurrently

    Returns (measurements, catalog) once both are complete, the first failure
    of either side is raised instead. fetch_stats is called with the
    addresses and a stop event that is set as soon as the run fails, servers
    not polled by then are skipped.
    """
    if fetch_stats is None:
        fetch_stats = fetch_all_stats

    def build_catalog() -> OfferingCatalog:
        return OfferingCatalog.from_raw(
            fetch_offerings(),
            reserved_percent=reserved_memory_percent,
            known_capacities=load_known_capacities(),
        )

    stop = threading.Event()
    executor = ThreadPoolExecutor(max_workers=2)
    try:
        measurements_future = executor.submit(fetch_stats, addresses, stop=stop)
        catalog_future = executor.submit(build_catalog)
        measurements, catalog = gather([measurements_future, catalog_future])
    finally:
        stop.set()
        executor.shutdown(wait=True, cancel_futures=True)
    return measurements, catalog


def run(args: RunArgs) -> int:
    location = region_description(args.region)
    if args.max_load >= 90:
        logger.warning(
            "please make sure you understand available memory on ElastiCache "
            "Redis:\n%s",
            AVAILABLE_MEMORY_LINK,
        )
    if args.reserved_memory_percent < DEFAULT_RESERVED_MEMORY_PERCENT:
        logger.warning(
            "please make sure you understand how reserved-memory-percent "
            "parameter works"
        )

    with open(args.redises, encoding="utf-8") as fd:
        addresses = read_addresses(fd)
    if not addresses:
        raise ValueError("no Redis addresses to work on")

    measurements, catalog = collect(
        addresses,
        _offerings_source(args),
        reserved_memory_percent=args.reserved_memory_percent,
    )
    planner = CapacityPlanner(catalog, max_load_percent=args.max_load)
    report: SizingReport = planner.report(
        measurements,
        region=location,
        reserved_memory_percent=args.reserved_memory_percent,
    )

    if args.html is not None:
        with open(args.html, "w", encoding="utf-8") as f:
            f.write(render_html_report(report))
    elif args.csv:
        write_csv_report(sys.stdout, report.rows)
    else:
        write_text_report(sys.stdout, report.rows)
    return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> RunArgs:
    parser = argparse.ArgumentParser(
        prog="elasticache-sizing",
        description=__doc__,
        epilog=RESERVED_MEMORY_PERCENT_NOTE,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--region", default="us-east-1", help="use prices for this AWS region"
    )
    parser.add_argument(
        "--redises",
        required=True,
        type=Path,
        help=(
            "path to file with Redis addresses, one per line "
            "(/dev/stdin to read from stdin)"
        ),
    )
    parser.add_argument(
        "--html",
        type=Path,
        help="path to HTML file to save report; if empty, text report is printed",
    )
    parser.add_argument(
        "--csv",
        action="store_true",
        help="print report in CSV instead of formatted text",
    )
    parser.add_argument(
        "--any-generation",
        action="store_true",
        help="take into account old generation instance types",
    )
    parser.add_argument(
        "--any-family",
        action="store_true",
        help="take into account all instance families, not only memory-optimized",
    )
    parser.add_argument(
        "--max-load",
        type=int,
        default=80,
        help=(
            "source dataset must fit this percent maxmemory utilization of the "
            "target, [1,100] range"
        ),
    )
    parser.add_argument(
        "--reserved-memory-percent",
        type=int,
        default=DEFAULT_RESERVED_MEMORY_PERCENT,
        help="value of reserved-memory-percent ElastiCache parameter, [0,100] range",
    )
    parser.add_argument(
        "--pricing-file",
        type=Path,
        help="read offerings from a fetch-pricing snapshot instead of the API",
    )
    parser.add_argument("--debug", action="store_true", help="Show verbose output")
    ns = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if ns.debug else logging.INFO,
        format="%(message)s",
        stream=sys.stderr,
    )
    values = {k: v for k, v in vars(ns).items() if k != "debug"}
    try:
        return RunArgs(**values)
    except ValidationError as exp:
        parser.error(str(exp))


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    try:
        return run(args)
    except Exception as exp:  # pylint: disable=broad-except
        logger.debug("run failed", exc_info=True)
        print(str(exp), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
