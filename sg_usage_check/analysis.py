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


""" Runs the analysis: fetch, index, and classify each region, then combine the
    regions into one result. Regions are independent of each other, so they may
    be processed concurrently; a region that fails is recorded and skipped.
    """

import logging

from concurrent.futures import ThreadPoolExecutor, as_completed
from functools import partial

from . import classifier, index
from .aggregator import Aggregator
from .aws import ec2
from .core import FetchError

logger = logging.getLogger(__name__)


def analyze_region(region, fetch):
    """ Produces the classification records for a single region. Raises FetchError
        if the region's data can't be retrieved.
        """
    data = fetch(region)
    if not data.security_groups:
        logger.info("%s: no security groups", region)
        return []
    lookups = index.build(data.security_groups, data.instances, data.network_interfaces)
    records = classifier.classify_all(data.security_groups, lookups)
    logger.info("%s: %d of %d security groups have no attached instances",
                region, len(records), len(data.security_groups))
    return records


def analyze(regions, max_workers=1, fetch=None, profile_name=None):
    """ Analyzes all of the given regions and returns an AnalysisResult.

        fetch is a function that takes a region name and returns RegionData; by
        default it calls the EC2 API. With max_workers > 1 regions are processed
        in parallel, but the result is the same as a sequential run.
        """
    if not regions:
        raise ValueError("at least one region must be specified")
    regions = list(dict.fromkeys(regions))
    fetch = fetch or partial(ec2.lookup, profile_name=profile_name)
    aggregator = Aggregator()
    if max_workers <= 1 or len(regions) == 1:
        for region in regions:
            _merge(aggregator, region, partial(analyze_region, region, fetch))
    else:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(regions))) as executor:
            futures = {executor.submit(analyze_region, region, fetch): region for region in regions}
            for future in as_completed(futures):
                _merge(aggregator, futures[future], future.result)
    result = aggregator.result()
    if result.partial:
        logger.warning("results are partial: %d of %d regions could not be analyzed",
                       len(result.failures), len(regions))
    return result


##
## Internals
##

def _merge(aggregator, region, get_records):
    # the only place where per-region results touch shared state
    try:
        records = get_records()
    except FetchError as e:
        logger.warning("skipping %s: %s", region, e)
        aggregator.add_failure(region, str(e))
        return
    except Exception as e:
        logger.warning("skipping %s: unexpected error: %s", region, e, exc_info=True)
        aggregator.add_failure(region, f"unexpected error: {e}")
        return
    try:
        aggregator.add_region(region, records)
    except ValueError as e:
        logger.warning("skipping %s: %s", region, e)
        aggregator.add_failure(region, str(e))
