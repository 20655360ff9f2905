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


""" Code to retrieve the security groups, instances, and network interfaces for a
    region. Each dataset is retrieved with a single paginated bulk call, never
    one call per group, and converted into the records defined in core.
    """

import boto3
import logging

from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache

from ..config import max_attempts
from ..core import FetchError, Instance, NetworkInterface, RegionData, SecurityGroup, SecurityGroupRule

logger = logging.getLogger(__name__)


def lookup(region, profile_name=None, client=None):
    """ This is the entry point for retrieving a region's data. The three bulk
        calls are independent, so they run concurrently; this function returns
        only after all of them have finished. If any of them fails, raises
        FetchError and the region's data is discarded.
        """
    ec2 = client or _ec2_client(region, profile_name)
    with ThreadPoolExecutor(max_workers=3, thread_name_prefix=f"fetch-{region}") as executor:
        sg_future = executor.submit(_fetch, region, "describe_security_groups", _describe_security_groups, ec2)
        instance_future = executor.submit(_fetch, region, "describe_instances", _describe_instances, ec2)
        eni_future = executor.submit(_fetch, region, "describe_network_interfaces", _describe_network_interfaces, ec2)
    security_groups = sg_future.result()
    instances = instance_future.result()
    network_interfaces = eni_future.result()
    logger.info("%s: retrieved %d security groups, %d instances, %d network interfaces",
                region, len(security_groups), len(instances), len(network_interfaces))
    return RegionData(region, security_groups, instances, network_interfaces)


def to_security_group(region, sg):
    """ Converts one element of a DescribeSecurityGroups response.
        """
    return SecurityGroup(
        region,
        sg['GroupId'],
        sg.get('GroupName', ""),
        sg.get('Description', ""),
        sg.get('VpcId'),
        tuple(_to_rules(sg.get('IpPermissions', []))),
        tuple(_to_rules(sg.get('IpPermissionsEgress', []))))


def to_instance(instance):
    """ Converts one element of a reservation's Instances list.
        """
    return Instance(
        instance['InstanceId'],
        _name_tag(instance.get('Tags', [])),
        instance.get('State', {}).get('Name'),
        _group_ids(instance.get('SecurityGroups', [])))


def to_network_interface(eni):
    """ Converts one element of a DescribeNetworkInterfaces response.
        """
    return NetworkInterface(
        eni['NetworkInterfaceId'],
        eni.get('Description', ""),
        eni.get('Status'),
        eni.get('VpcId'),
        _group_ids(eni.get('Groups', [])))


##
## Internals
##

@lru_cache(maxsize=None)
def _ec2_client(region, profile_name=None):
    # botocore retries throttling and transient errors before we ever see them
    config = Config(retries={'max_attempts': max_attempts(), 'mode': 'standard'})
    session = boto3.Session(profile_name=profile_name) if profile_name else boto3.Session()
    return session.client('ec2', region_name=region, config=config)


def _fetch(region, operation, func, ec2):
    try:
        return func(region, ec2)
    except ClientError as e:
        error = e.response.get('Error', {})
        cause = f"{error.get('Code', 'Unknown')}: {error.get('Message', '')}"
        logger.warning("%s: %s failed: %s", region, operation, cause)
        raise FetchError(region, operation, cause) from e
    except BotoCoreError as e:
        logger.warning("%s: %s failed: %s", region, operation, e)
        raise FetchError(region, operation, str(e)) from e


def _describe_security_groups(region, ec2):
    result = []
    for page in ec2.get_paginator('describe_security_groups').paginate():
        for sg in page.get('SecurityGroups', []):
            result.append(to_security_group(region, sg))
    logger.debug("%s: describe_security_groups returned %d groups", region, len(result))
    return result


def _describe_instances(region, ec2):
    result = []
    for page in ec2.get_paginator('describe_instances').paginate():
        for reservation in page.get('Reservations', []):
            for instance in reservation.get('Instances', []):
                result.append(to_instance(instance))
    logger.debug("%s: describe_instances returned %d instances", region, len(result))
    return result


def _describe_network_interfaces(region, ec2):
    result = []
    for page in ec2.get_paginator('describe_network_interfaces').paginate():
        for eni in page.get('NetworkInterfaces', []):
            result.append(to_network_interface(eni))
    logger.debug("%s: describe_network_interfaces returned %d interfaces", region, len(result))
    return result


def _to_rules(permissions):
    """ Yields one rule per source/destination of each permission. Only the
        UserIdGroupPairs entries reference another group; CIDR and prefix-list
        entries yield rules without a reference so a group keeps its full rule set.
        """
    for perm in permissions:
        protocol = perm.get('IpProtocol', "-1")
        from_port = perm.get('FromPort')
        to_port = perm.get('ToPort')
        for pair in perm.get('UserIdGroupPairs', []):
            if pair.get('GroupId'):
                yield SecurityGroupRule(protocol, from_port, to_port, pair['GroupId'], pair.get('UserId'))
        address_count = len(perm.get('IpRanges', [])) + len(perm.get('Ipv6Ranges', [])) + len(perm.get('PrefixListIds', []))
        for _ in range(address_count):
            yield SecurityGroupRule(protocol, from_port, to_port, None, None)


def _name_tag(tags):
    for tag in tags or []:
        if tag.get('Key') == "Name":
            return tag.get('Value')
    return None


def _group_ids(groups):
    result = []
    for group in groups:
        group_id = group.get('GroupId')
        if group_id and group_id not in result:
            result.append(group_id)
    return tuple(result)
