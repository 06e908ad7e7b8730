import csv
from typing import IO
from typing import Sequence

from jinja2 import Environment
from tabulate import tabulate

from elasticache_sizing.interface import MatchResult
from elasticache_sizing.interface import SizingReport

# Load ratios at or above this are highlighted in the html report
WARN_LOAD_PERCENT = 95.0

TEXT_HEADERS = [
    "HOST",
    "USED(LOAD)",
    "TYPE",
    "$/HR",
    "$/MONTH",
    "PEAK(LOAD)",
    "TYPE",
    "$/HR",
    "$/MONTH",
]

CSV_HEADERS = [
    "host",
    "used memory (gib)",
    "instance type (use-based)",
    "instance memory (use-based)",
    "usd/month (use-based)",
    "peak memory (gib)",
    "instance type (peak-based)",
    "instance memory (peak-based)",
    "usd/month (peak-based)",
]


def write_text_report(out: IO[str], rows: Sequence[MatchResult]) -> None:
    table = []
    for row in rows:
        used, peak = row.used_based, row.peak_based
        table.append(
            [
                row.measurement.address,
                f"{row.measurement.used_gib:.1f} ({row.used_ratio:.1f}%)",
                used.instance_type,
                f"{used.price_per_hour:.3f}",
                f"{used.price_per_month:.3f}",
                f"{row.measurement.peak_gib:.1f} ({row.peak_ratio:.1f}%)",
                peak.instance_type,
                f"{peak.price_per_hour:.3f}",
                f"{peak.price_per_month:.3f}",
            ]
        )
    out.write(
        tabulate(table, headers=TEXT_HEADERS, tablefmt="plain", disable_numparse=True)
    )
    out.write("\n")


def write_csv_report(out: IO[str], rows: Sequence[MatchResult]) -> None:
    writer = csv.writer(out, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(
            [
                row.measurement.address,
                f"{row.measurement.used_gib:.2f}",
                row.used_based.instance_type,
                f"{row.used_based.memory_gib:.2f}",
                f"{row.used_based.price_per_month:.3f}",
                f"{row.measurement.peak_gib:.2f}",
                row.peak_based.instance_type,
                f"{row.peak_based.memory_gib:.2f}",
                f"{row.peak_based.price_per_month:.3f}",
            ]
        )


PAGE_TEMPLATE = """<!doctype html><head><meta charset="utf-8">
<title>Redis instances matched to ElastiCache Redis instances</title>
<style>
	html {line-height: 1.3; font-family: ui-serif, serif;}
	table, code {font-family: ui-monospace, monospace;}
	caption {padding:1em; caption-side: top; font-weight: bold; font-family: ui-sans-serif, sans-serif;}
	th, td {padding: 0.1rem .5rem;}
	td {white-space: nowrap;}
	th {vertical-align: middle; text-align: center; background-color: #eee;}
	tr:nth-child(even) td {background-color: #f8f8f8;}
	tr:hover td {background-color: #eee;}
	.right {text-align: right;}
	.warn {color: darkred;}
	tfoot td {font-weight: bold;}
	#footnote {max-width:50em;}
</style>
</head>
<body>
<table>
<caption>Estimate on ElastiCache instances required to cover Redis instances<br>
based on memory readings from {{ report.generated_at.strftime("%Y-%m-%d %H:%M") }} UTC,<br>
using {{ report.max_load_percent }}% <a href="#footnote">max memory load target</a><sup>*</sup>
and <code>reserved-memory-percent={{ report.reserved_memory_percent }}</code>,<br>
prices are for on-demand nodes in {{ report.region }} region
</caption>
<thead>
<tr>
	<th rowspan=2>Redis instance</th>
	<th rowspan=2>Used, GiB</th>
	<th rowspan=2>Peak, GiB</th>
	<th colspan=5>Based on used memory</th>
	<th colspan=5>Based on peak memory</th>
</tr>
<tr>
{%- for basis in ("used", "peak") %}
	<th>Node type</th>
	<th>Node size, <a href="#footnote">GiB</a><sup>*</sup></th>
	<th>Load, %</th>
	<th>USD<wbr>/hour</th>
	<th>USD<wbr>/month</th>
{%- endfor %}
</tr>
</thead>
<tbody>
{%- for row in report.rows %}
<tr>
	<td>{{ row.measurement.address }}</td>
	<td class="right">{{ "%.1f"|format(row.measurement.used_gib) }}</td>
	<td class="right">{{ "%.1f"|format(row.measurement.peak_gib) }}</td>
	{{- cells(row.used_based, row.used_ratio) }}
	{{- cells(row.peak_based, row.peak_ratio) }}
</tr>
{%- endfor %}
</tbody>
<tfoot>
<tr>
	<th scope="row" colspan=3>Totals</th>
	<th scope="row" colspan=4>Based on used memory, USD / month</th>
	<td class="right">{{ "%.3f"|format(report.used_based_total) }}</td>
	<th scope="row" colspan=4>Based on peak memory, USD / month</th>
	<td class="right">{{ "%.3f"|format(report.peak_based_total) }}</td>
</tr>
</tfoot>
</table>
<footer><p id="footnote"><sup>*</sup> Node sizes display
<code>maxmemory</code> target Redis values, derived from
<a href="https://docs.aws.amazon.com/AmazonElastiCache/latest/red-ug/ParameterGroups.Redis.html#ParameterGroups.Redis.NodeSpecific">node-specific list of maxmemory values</a>, corrected to ElastiCache-specific <a href="https://docs.aws.amazon.com/AmazonElastiCache/latest/red-ug/ParameterGroups.Redis.html#ParameterGroups.Redis.3-2-4.New"><code>reserved-memory-percent={{ report.reserved_memory_percent }}</code> parameter</a>.
</p></footer>
</body>
"""

CELLS_MACRO = """{% macro cells(offering, ratio) %}
	<td>{{ offering.instance_type }}</td>
	<td class="right">{{ "%.1f"|format(offering.memory_gib) }}</td>
	<td class="right{% if ratio >= warn_load %} warn{% endif %}">{{ "%.1f"|format(ratio) }}</td>
	<td class="right">{{ "%.3f"|format(offering.price_per_hour) }}</td>
	<td class="right">{{ "%.3f"|format(offering.price_per_month) }}</td>
{%- endmacro %}
"""

_env = Environment(autoescape=True)
_env.globals["warn_load"] = WARN_LOAD_PERCENT
_page = _env.from_string(CELLS_MACRO + PAGE_TEMPLATE)


def render_html_report(report: SizingReport) -> str:
    return _page.render(report=report)
