import argparse
import configparser
import logging
import os
import sys
from pathlib import Path
from typing import Any
from typing import Dict
from typing import Optional
from typing import Sequence

from pydantic import ValidationError

from cpu_allocator.allocator import CpuAllocator
from cpu_allocator.catalog import catalogs
from cpu_allocator.catalog import load_catalog_from_disk
from cpu_allocator.interface import AllocationRequest
from cpu_allocator.interface import Catalog
from cpu_allocator.report import dump_report
from cpu_allocator.report import format_cost
from cpu_allocator.report import summarize
from cpu_allocator.report import write_report

logger = logging.getLogger(__name__)

# .properties files have no sections, configparser needs one
_SECTION = "request"


def read_properties(path: Path) -> Dict[str, str]:
    """Reads hours / minCPUs / maxPrice style key=value properties"""
    parser = configparser.ConfigParser(interpolation=None)
    # keep minCPUs and maxPrice as written
    parser.optionxform = str  # type: ignore[assignment,method-assign]
    with open(path, encoding="utf-8") as fd:
        parser.read_string(f"[{_SECTION}]\n{fd.read()}", source=str(path))
    return dict(parser[_SECTION])


def build_request(args: Any) -> AllocationRequest:
    fields: Dict[str, Any] = {}
    if args.request_file is not None:
        fields.update(read_properties(args.request_file))
    # flags win over the request file
    for name in ("hours", "min_cpus", "max_price"):
        value = getattr(args, name)
        if value is not None:
            fields[name] = value
    return AllocationRequest.model_validate(fields)


def load_catalog(args: Any) -> Catalog:
    if args.catalog:
        return load_catalog_from_disk(args.catalog)
    if os.environ.get("CATALOG_PATH"):
        return load_catalog_from_disk()
    return catalogs.catalog


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = argparse.ArgumentParser(
        prog="allocate-cpus",
        description=(
            "Allocate servers across regions for a minimum number of CPUs, "
            "a maximum price, or both, and print the per region cost report"
        ),
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        action="append",
        help=(
            "Catalog JSON mapping region -> size -> hourly cost. May be given "
            "more than once, later files override earlier costs. Defaults to "
            "CATALOG_PATH or the bundled CATALOG_PROFILE"
        ),
    )
    parser.add_argument(
        "--request-file",
        type=Path,
        help="Properties file with hours, minCPUs and maxPrice",
    )
    parser.add_argument("--hours", type=int, help="Hours the servers are needed for")
    parser.add_argument("--min-cpus", type=int, help="Minimum number of CPUs")
    parser.add_argument("--max-price", type=float, help="Maximum price to pay")
    parser.add_argument(
        "--output-path",
        type=Path,
        help="Also write the report to this file. Otherwise only stdout",
    )
    parser.add_argument("--debug", action="store_true", help="Show verbose output")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)

    try:
        request = build_request(args)
    except (OSError, configparser.Error, ValidationError) as exp:
        print(f"ERROR: invalid request: {exp}", file=sys.stderr)
        return 1
    logger.debug("Allocating for %s", request)

    try:
        catalog = load_catalog(args)
    except (OSError, ValueError) as exp:
        # ValueError covers malformed JSON and pydantic validation errors
        print(f"ERROR: unable to load the catalog: {exp}", file=sys.stderr)
        return 1

    try:
        result = CpuAllocator(catalog).allocate(request)
    except ValueError as exp:
        print(f"ERROR: {exp}", file=sys.stderr)
        return 1

    report = summarize(result.plan)
    print(dump_report(report, indent=2))
    if args.output_path is not None:
        write_report(report, args.output_path)

    if result.is_infeasible:
        print(
            f"WARNING: infeasible request, {request.min_cpus} CPUs cost at least "
            f"{format_cost(result.minimum_cost or 0)} which exceeds the maximum "
            f"price {format_cost(request.max_price or 0)}",
            file=sys.stderr,
        )
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
