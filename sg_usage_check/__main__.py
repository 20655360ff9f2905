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


import argparse
import json
import logging
import sys

from rich.console import Console

from . import analysis, config, report


arg_parser = argparse.ArgumentParser(description="Reports security groups that aren't attached to any instance, and why they may still be needed")
arg_parser.add_argument("--region",
                        metavar="REGION",
                        dest='regions',
                        action='append',
                        help="""A region to analyze; may be repeated. If omitted, uses the comma-separated
                                list in SG_USAGE_REGIONS, or every commercial region.
                                """)
arg_parser.add_argument("--profile",
                        metavar="PROFILE_NAME",
                        dest='profile',
                        help="""The AWS profile to use. If omitted, uses the default credential chain.
                                """)
arg_parser.add_argument("--max-workers",
                        metavar="COUNT",
                        dest='max_workers',
                        type=int,
                        help="""The number of regions to analyze concurrently. If omitted, uses
                                SG_USAGE_MAX_WORKERS, or 4.
                                """)
arg_parser.add_argument("--format",
                        dest='format',
                        choices=["text", "lines", "json"],
                        default="text",
                        help="""Output format: a colored report (the default), one "region:groupId [LABEL]"
                                line per group, or a JSON document.
                                """)
arg_parser.add_argument("--verbose",
                        dest='verbose',
                        action='store_true',
                        help="""Show network interfaces and referencing rules for each group, and debug logging.
                                """)


def main(argv=None):
    args = arg_parser.parse_args(argv)
    try:
        cfg = config.build_config(args.regions, args.max_workers, args.verbose)
        config.max_attempts()
    except ValueError as e:
        arg_parser.error(str(e))

    logging.basicConfig(level=logging.DEBUG if cfg.verbose else logging.INFO,
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
                        stream=sys.stderr)
    # boto's own debug output drowns everything else
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)

    result = analysis.analyze(cfg.regions, max_workers=cfg.max_workers, profile_name=args.profile)

    if args.format == "json":
        print(json.dumps(report.to_document(result), indent=2))
    elif args.format == "lines":
        for line in report.lines(result):
            print(line)
    else:
        report.print_report(result, Console(), verbose=cfg.verbose)

    return 1 if result.partial else 0


if __name__ == "__main__":
    sys.exit(main())
