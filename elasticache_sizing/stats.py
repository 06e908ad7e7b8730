import logging
import threading
from concurrent.futures import Future
from concurrent.futures import FIRST_EXCEPTION
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import wait
from typing import Callable
from typing import Iterable
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import TypeVar

import redis

from elasticache_sizing.interface import Measurement

logger = logging.getLogger(__name__)

# Servers are polled by at most this many threads at once
MAX_WORKERS = 10
# Seconds to wait for connect and for each reply
DEFAULT_TIMEOUT = 10.0

T = TypeVar("T")


def split_host_port(address: str) -> Tuple[str, str]:
    """Splits HOST:PORT, IPv6 hosts must be bracketed like [::1]:6379"""
    if address.startswith("["):
        end = address.find("]")
        if end < 0:
            raise ValueError(f"{address!r}: missing ']' in address")
        host, rest = address[1:end], address[end + 1 :]
        if not rest.startswith(":"):
            raise ValueError(f"{address!r}: missing port in address")
        port = rest[1:]
    else:
        if ":" not in address:
            raise ValueError(f"{address!r}: missing port in address")
        host, port = address.rsplit(":", 1)
        if ":" in host:
            raise ValueError(f"{address!r}: too many colons in address")

    if not host or not port:
        raise ValueError(
            f"{address!r} does not look like a valid address in HOST:PORT format"
        )
    if not port.isdigit():
        raise ValueError(f"{address!r}: port {port!r} is not a number")
    return host, port


def read_addresses(lines: Iterable[str]) -> List[str]:
    """Reads one HOST:PORT per line, blank lines and # comments are skipped"""
    out = []
    for line in lines:
        if line.startswith("#"):
            continue
        line = line.strip()
        if not line:
            continue
        split_host_port(line)
        out.append(line)
    return out


def fetch_stats(address: str, timeout: float = DEFAULT_TIMEOUT) -> Measurement:
    """Reads used_memory and used_memory_peak from INFO memory"""
    host, port = split_host_port(address)
    with redis.Redis(
        host=host,
        port=int(port),
        socket_timeout=timeout,
        socket_connect_timeout=timeout,
    ) as client:
        info = client.info("memory")

    return Measurement(
        address=address,
        used_bytes=int(info.get("used_memory", 0)),
        peak_bytes=int(info.get("used_memory_peak", 0)),
    )


def gather(futures: Sequence["Future[T]"]) -> List[T]:
    """Waits for every future, or until the first one fails

    On failure the futures that have not started yet are cancelled and the
    first error is raised. Results come back in the order of futures.
    """
    done, not_done = wait(futures, return_when=FIRST_EXCEPTION)
    for future in futures:
        if future in done and future.exception() is not None:
            for pending in not_done:
                pending.cancel()
            raise future.exception()  # type: ignore[misc]
    return [f.result() for f in futures]


class PollingStopped(RuntimeError):
    """Raised by fetches that were skipped because polling was stopped"""


def _fetch_one(
    fetch: Callable[[str], Measurement],
    address: str,
    stop: Optional[threading.Event] = None,
) -> Measurement:
    if stop is not None and stop.is_set():
        raise PollingStopped(f"{address}: polling stopped")
    try:
        return fetch(address)
    except redis.exceptions.RedisError as exp:
        raise RuntimeError(f"{address}: {exp}") from exp


def fetch_all_stats(
    addresses: Sequence[str],
    fetch: Callable[[str], Measurement] = fetch_stats,
    max_workers: int = MAX_WORKERS,
    stop: Optional[threading.Event] = None,
) -> List[Measurement]:
    """Polls every address on a bounded pool, results in input order

    Once stop is set, servers that have not been polled yet are skipped and
    PollingStopped is raised. Fetches already in flight run to completion.
    """
    if not addresses:
        return []

    workers = min(len(addresses), max_workers)
    logger.debug("Polling %d servers with %d workers", len(addresses), workers)
    executor = ThreadPoolExecutor(max_workers=workers)
    try:
        futures = [executor.submit(_fetch_one, fetch, a, stop) for a in addresses]
        return gather(futures)
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
