# Copyright 2023, Chariot Solutions
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


""" Turns an AnalysisResult into something a person (or a script) can read.
    Nothing in here affects how groups are classified.
    """

from itertools import groupby

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .core import BUCKETS


BUCKET_TITLES = {
    "default": "Default (do not delete)",
    "completelyUnused": "Completely unused",
    "hasInterfaces": "Has network interfaces",
    "referenced": "Referenced by other SGs",
}

BUCKET_STYLES = {
    "default": "blue",
    "completelyUnused": "green",
    "hasInterfaces": "yellow",
    "referenced": "magenta",
}


def format_line(record):
    """ The machine-parseable form: "region:groupId [LABEL]".
        """
    return f"{record.region}:{record.group_id} [{record.category.label}]"


def lines(result):
    return [format_line(record) for record in result.records]


def to_document(result):
    """ Returns a JSON-serializable dict holding everything in the result.
        """
    return {
        "regions": list(result.regions),
        "failures": [{"region": f.region, "message": f.message} for f in result.failures],
        "partial": result.partial,
        "counts": result.counts,
        "totals": result.totals,
        "groups": [_record_document(record) for record in result.records],
    }


def print_report(result, console=None, verbose=False):
    console = console or Console()
    for region, records in groupby(result.records, key=lambda r: r.region):
        console.print(_region_table(region, list(records), verbose))
    for region in result.regions:
        if not any(result.counts[region].values()):
            console.print(f"[dim]{region}: no unused security groups[/dim]")
    console.print(_summary_table(result))
    for failure in result.failures:
        console.print(f"[bold red]WARNING:[/bold red] {failure.region} was not analyzed: {escape(failure.message)}")
    if result.partial:
        console.print(f"[bold yellow]Results are partial: {len(result.failures)} region(s) skipped[/bold yellow]")


##
## Internals
##

def _region_table(region, records, verbose):
    table = Table(title=region, box=box.ROUNDED, header_style="bold")
    table.add_column("Group ID", style="cyan", no_wrap=True)
    table.add_column("Name")
    table.add_column("VPC", style="dim")
    table.add_column("Status")
    table.add_column("Description", style="dim")
    if verbose:
        table.add_column("Network interfaces")
        table.add_column("Referenced by")
    for record in records:
        style = BUCKET_STYLES[record.category.bucket]
        row = [record.group_id,
               escape(record.group_name),
               record.vpc_id or "",
               f"[{style}]{record.category.label}[/{style}]",
               escape(record.description)]
        if verbose:
            row.append("\n".join(escape(f"{eni.interface_id} ({eni.status}) {eni.description}".rstrip())
                                 for eni in record.attached_interfaces))
            row.append("\n".join(escape(_describe_reference(ref)) for ref in record.referenced_by))
        table.add_row(*row)
    return table


def _summary_table(result):
    table = Table(title="Summary", box=box.SIMPLE, header_style="bold")
    table.add_column("Region")
    for bucket in BUCKETS:
        table.add_column(BUCKET_TITLES[bucket], justify="right", style=BUCKET_STYLES[bucket])
    for region in result.regions:
        table.add_row(region, *[str(result.counts[region][bucket]) for bucket in BUCKETS])
    table.add_row("[bold]Total[/bold]", *[str(result.totals[bucket]) for bucket in BUCKETS])
    return table


def _describe_reference(ref):
    if ref.from_port is None or ref.protocol == "-1":
        ports = "all"
    elif ref.from_port == ref.to_port:
        ports = str(ref.from_port)
    else:
        ports = f"{ref.from_port}-{ref.to_port}"
    return f"{ref.referencing_group_id} ({ref.referencing_group_name}) {ref.direction} {ref.protocol}/{ports}"


def _record_document(record):
    return {
        "region": record.region,
        "groupId": record.group_id,
        "groupName": record.group_name,
        "description": record.description,
        "vpcId": record.vpc_id,
        "category": record.category.display_name,
        "label": record.category.label,
        "attachedInstances": [i._asdict() for i in record.attached_instances],
        "attachedInterfaces": [i._asdict() for i in record.attached_interfaces],
        "referencedBy": [r._asdict() for r in record.referenced_by],
    }
