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


""" Combines the per-region classification records into the final result.
    """

from collections import namedtuple

from .core import BUCKETS, RegionFailure


AnalysisResult = namedtuple('AnalysisResult', ['records', 'counts', 'totals', 'regions', 'failures', 'partial'])


def sort_key(record):
    return (record.region, record.category.priority, record.group_id)


class Aggregator:
    """ Accumulates the results of each region once that region is finished.
        Nothing is shared with the code that processes a region: the records
        for a region are handed over in a single add_region() call.

        The order in which regions are added doesn't affect the result.
        """

    def __init__(self):
        self.records_by_bucket = {bucket: [] for bucket in BUCKETS}
        self.counts = {}
        self.failures = {}

    def add_region(self, region, records):
        if region in self.counts or region in self.failures:
            raise ValueError(f"region {region} has already been recorded")
        records = list(records)
        region_counts = {bucket: 0 for bucket in BUCKETS}
        for record in records:
            if record.region != region:
                raise ValueError(f"record for {record.group_id} belongs to {record.region}, not {region}")
            region_counts[record.category.bucket] += 1
        for record in records:
            self.records_by_bucket[record.category.bucket].append(record)
        self.counts[region] = region_counts
        return self

    def add_failure(self, region, message):
        if region in self.counts or region in self.failures:
            raise ValueError(f"region {region} has already been recorded")
        self.failures[region] = RegionFailure(region, message)
        return self

    @property
    def partial(self):
        return bool(self.failures)

    def records(self):
        """ All records, ordered by region, category priority, and group ID.
            """
        combined = []
        for bucket in BUCKETS:
            combined.extend(self.records_by_bucket[bucket])
        return sorted(combined, key=sort_key)

    def totals(self):
        return {bucket: len(self.records_by_bucket[bucket]) for bucket in BUCKETS}

    def result(self):
        regions = sorted(self.counts)
        counts = {region: dict(self.counts[region]) for region in regions}
        failures = [self.failures[region] for region in sorted(self.failures)]
        return AnalysisResult(self.records(), counts, self.totals(), regions, failures, self.partial)
