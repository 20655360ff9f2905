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


""" Assigns each security group to exactly one usage category.
    """

from collections import namedtuple

from .core import Category, ClassificationRecord


Signals = namedtuple('Signals', ['has_instances', 'is_default', 'has_interfaces', 'has_references'])

IN_USE = None

# Evaluated top to bottom, first match wins. A group attached to an instance is
# in use and gets no category at all; a default group is never reported as
# anything else.
POLICY = (
    (lambda s: s.has_instances,                        IN_USE),
    (lambda s: s.is_default,                           Category.DEFAULT_SECURITY_GROUP),
    (lambda s: s.has_interfaces and s.has_references,  Category.HAS_NETWORK_INTERFACES_AND_REFERENCES),
    (lambda s: s.has_interfaces,                       Category.HAS_NETWORK_INTERFACES),
    (lambda s: s.has_references,                       Category.REFERENCED_BY_OTHER_SGS),
    (lambda s: True,                                   Category.COMPLETELY_UNUSED),
)


def decide(signals):
    """ Returns the category for a set of signals, or None if the group is in use.
        """
    for predicate, outcome in POLICY:
        if predicate(signals):
            return outcome


def classify(group, index):
    """ Produces the classification record for a group, or None for a group that
        is attached to at least one instance.
        """
    instances = index.instances_for(group.group_id)
    interfaces = index.interfaces_for(group.group_id)
    references = index.references_to(group.group_id)
    signals = Signals(bool(instances), index.is_default(group.group_id), bool(interfaces), bool(references))
    category = decide(signals)
    if category is IN_USE:
        return None
    return ClassificationRecord(group.region, group.group_id, group.group_name, group.description, group.vpc_id,
                                category, instances, interfaces, references)


def classify_all(security_groups, index):
    result = []
    for group in security_groups:
        record = classify(group, index)
        if record is not None:
            result.append(record)
    return result
