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


""" Run configuration: which regions to analyze, and how hard to push the API.
    Values given on the command line win over the environment, which wins over
    the defaults defined here.
    """

import os

from collections import namedtuple


AWS_REGIONS = [
    'us-east-1', 'us-east-2', 'us-west-1', 'us-west-2',
    'af-south-1',
    'ap-east-1', 'ap-south-1', 'ap-south-2', 'ap-southeast-1', 'ap-southeast-2',
    'ap-southeast-3', 'ap-southeast-4', 'ap-northeast-1', 'ap-northeast-2', 'ap-northeast-3',
    'ca-central-1', 'ca-west-1',
    'eu-central-1', 'eu-central-2', 'eu-west-1', 'eu-west-2', 'eu-west-3',
    'eu-south-1', 'eu-south-2', 'eu-north-1',
    'me-south-1', 'me-central-1',
    'sa-east-1',
    'il-central-1',
]

DEFAULT_MAX_WORKERS = 4
DEFAULT_MAX_ATTEMPTS = 5


AnalysisConfig = namedtuple('AnalysisConfig', ['regions', 'max_workers', 'verbose'])


def build_config(regions=None, max_workers=None, verbose=False, environ=None):
    """ Combines explicit arguments with environment defaults and validates the
        result. Raises ValueError if there's nothing to analyze.
        """
    environ = os.environ if environ is None else environ
    if not regions:
        regions = _split(environ.get("SG_USAGE_REGIONS", "")) or AWS_REGIONS
    regions = _dedupe(r.strip() for r in regions if r and r.strip())
    if not regions:
        raise ValueError("at least one region must be specified")
    if max_workers is None:
        max_workers = _int_setting(environ, "SG_USAGE_MAX_WORKERS", DEFAULT_MAX_WORKERS)
    if max_workers < 1:
        raise ValueError(f"max_workers must be at least 1, got {max_workers}")
    return AnalysisConfig(regions, max_workers, bool(verbose))


def max_attempts(environ=None):
    """ Number of attempts botocore makes for each API call before giving up.
        """
    environ = os.environ if environ is None else environ
    attempts = _int_setting(environ, "SG_USAGE_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
    if attempts < 1:
        raise ValueError(f"SG_USAGE_MAX_ATTEMPTS must be at least 1, got {attempts}")
    return attempts


##
## Internals
##

def _split(value):
    return [s for s in value.split(",") if s.strip()]


def _dedupe(values):
    result = []
    for value in values:
        if value not in result:
            result.append(value)
    return result


def _int_setting(environ, name, default):
    value = environ.get(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}") from None
