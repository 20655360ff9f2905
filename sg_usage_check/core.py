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


""" Defines core data classes for the security group usage analyzer.

    Everything here is an immutable record: the fetcher builds them from API
    responses, and the rest of the program only reads them.
    """

from collections import namedtuple
from enum import Enum


##
## Inputs, as produced by the fetcher
##

SecurityGroupRule = namedtuple('SecurityGroupRule', ['protocol', 'from_port', 'to_port', 'referenced_group_id', 'referenced_account_id'])

SecurityGroup = namedtuple('SecurityGroup', ['region', 'group_id', 'group_name', 'description', 'vpc_id', 'ingress_rules', 'egress_rules'])

Instance = namedtuple('Instance', ['instance_id', 'name', 'state', 'attached_group_ids'])

NetworkInterface = namedtuple('NetworkInterface', ['interface_id', 'description', 'status', 'vpc_id', 'attached_group_ids'])

RegionData = namedtuple('RegionData', ['region', 'security_groups', 'instances', 'network_interfaces'])


def is_default_group(group):
    """ The provider creates one group named "default" per VPC; it can't be deleted.
        """
    return group.group_name == "default"


##
## Derived relationships
##

GroupReference = namedtuple('GroupReference', ['referenced_group_id', 'referencing_group_id', 'referencing_group_name', 'direction', 'protocol', 'from_port', 'to_port'])

AttachedInstance = namedtuple('AttachedInstance', ['instance_id', 'name', 'state'])

AttachedInterface = namedtuple('AttachedInterface', ['interface_id', 'description', 'status'])

INGRESS = "ingress"
EGRESS = "egress"


##
## Outputs
##

class Category(Enum):
    """ The mutually exclusive ways an instance-free security group can be used.

        Each member carries the report bucket it's counted in, the sort priority
        of that bucket, and the label used in the machine-parseable output. The
        combined interfaces-and-references category reports under the interface
        bucket.
        """

    DEFAULT_SECURITY_GROUP = ("DefaultSecurityGroup", "default", 1, "DEFAULT-VPC-SG-DO-NOT-DELETE")
    COMPLETELY_UNUSED = ("CompletelyUnused", "completelyUnused", 2, "SAFE-TO-DELETE")
    HAS_NETWORK_INTERFACES_AND_REFERENCES = ("HasNetworkInterfacesAndReferences", "hasInterfaces", 3, "HAS-NETWORK-INTERFACES")
    HAS_NETWORK_INTERFACES = ("HasNetworkInterfaces", "hasInterfaces", 3, "HAS-NETWORK-INTERFACES")
    REFERENCED_BY_OTHER_SGS = ("ReferencedByOtherSGs", "referenced", 4, "REFERENCED-BY-OTHER-SGs")

    def __init__(self, display_name, bucket, priority, label):
        self.display_name = display_name
        self.bucket = bucket
        self.priority = priority
        self.label = label


# report buckets in priority order
BUCKETS = ("default", "completelyUnused", "hasInterfaces", "referenced")


ClassificationRecord = namedtuple('ClassificationRecord', ['region', 'group_id', 'group_name', 'description', 'vpc_id', 'category', 'attached_instances', 'attached_interfaces', 'referenced_by'])

RegionFailure = namedtuple('RegionFailure', ['region', 'message'])


##
## Errors
##

class FetchError(Exception):
    """ Raised when one of the bulk retrieval calls for a region fails.
        """

    def __init__(self, region, operation, cause):
        super().__init__(f"{operation} failed in {region}: {cause}")
        self.region = region
        self.operation = operation
        self.cause = cause
