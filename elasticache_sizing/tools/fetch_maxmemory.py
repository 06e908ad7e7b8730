import argparse
import json
import sys
from html.parser import HTMLParser
from pathlib import Path
from typing import Dict
from typing import List
from typing import Optional

import requests

PARAMETERS_DOC_URL = (
    "https://docs.aws.amazon.com/AmazonElastiCache/latest/red-ug/"
    "ParameterGroups.Redis.html"
)


class MaxmemoryTableParser(HTMLParser):
    """Collects node type -> maxmemory from every table that has both columns

    The header row decides which columns to read, cells of other tables are
    ignored.
    """

    def __init__(self):
        super().__init__()
        self.values: Dict[str, int] = {}
        self._name_col: Optional[int] = None
        self._maxmemory_col: Optional[int] = None
        self._row: List[str] = []
        self._row_is_header = False
        self._cell: Optional[List[str]] = None

    def handle_starttag(self, tag, attrs):
        if tag == "table":
            self._name_col = None
            self._maxmemory_col = None
        elif tag == "tr":
            self._row = []
            self._row_is_header = False
        elif tag in ("th", "td"):
            self._cell = []
            if tag == "th":
                self._row_is_header = True

    def handle_endtag(self, tag):
        if tag in ("th", "td") and self._cell is not None:
            self._row.append("".join(self._cell).strip())
            self._cell = None
        elif tag == "tr":
            self._end_row()

    def handle_data(self, data):
        if self._cell is not None:
            self._cell.append(data)

    def _end_row(self):
        lowered = [text.lower() for text in self._row]
        if self._row_is_header and "node type" in lowered and "maxmemory" in lowered:
            self._name_col = lowered.index("node type")
            self._maxmemory_col = lowered.index("maxmemory")
            return
        if self._name_col is None or self._maxmemory_col is None:
            return
        if len(self._row) <= max(self._name_col, self._maxmemory_col):
            return

        name = self._row[self._name_col]
        maxmemory = self._row[self._maxmemory_col].replace(",", "")
        if not name or not maxmemory.isdigit():
            return
        self.values[name] = int(maxmemory)


def parse_maxmemory_table(html: str) -> Dict[str, int]:
    parser = MaxmemoryTableParser()
    parser.feed(html)
    parser.close()
    return parser.values


def fetch_maxmemory(url: str = PARAMETERS_DOC_URL) -> Dict[str, int]:
    resp = requests.get(url, timeout=30)
    resp.raise_for_status()
    values = parse_maxmemory_table(resp.text)
    if not values:
        raise ValueError(
            f"failed to parse anything useful from {url}, make sure a table "
            "with 'Node Type' and 'maxmemory' columns is present"
        )
    return values


def main() -> None:
    parser = argparse.ArgumentParser(
        description=(
            "Fetch node specific maxmemory values from the ElastiCache Redis "
            "parameter documentation."
        )
    )
    parser.add_argument("--url", default=PARAMETERS_DOC_URL)
    parser.add_argument(
        "--output-path",
        type=Path,
        help=(
            "Output file path, if not given the table is printed. If running "
            "from the repo use: elasticache_sizing/hardware/profiles/maxmemory.json"
        ),
    )
    args = parser.parse_args()

    values = fetch_maxmemory(args.url)
    if args.output_path is None:
        print(json.dumps(values, indent=2, sort_keys=True))
        return
    with open(args.output_path, "w", encoding="utf-8") as f:
        json.dump(values, f, indent=2, sort_keys=True)
        f.write("\n")
    print(f"{len(values)} node types written to {args.output_path}", file=sys.stderr)


if __name__ == "__main__":
    main()
