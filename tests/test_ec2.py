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


import pytest

from unittest.mock import Mock

from botocore.exceptions import ClientError, EndpointConnectionError

from sg_usage_check.aws import ec2
from sg_usage_check.core import FetchError, SecurityGroupRule


SECURITY_GROUPS = [
    {'GroupId': "sg-1", 'GroupName': "default", 'Description': "default VPC security group", 'VpcId': "vpc-1",
     'IpPermissions': [{'IpProtocol': "-1",
                        'UserIdGroupPairs': [{'GroupId': "sg-1", 'UserId': "123456789012"}],
                        'IpRanges': [], 'Ipv6Ranges': [], 'PrefixListIds': []}],
     'IpPermissionsEgress': [{'IpProtocol': "-1",
                              'IpRanges': [{'CidrIp': "0.0.0.0/0"}],
                              'Ipv6Ranges': [{'CidrIpv6': "::/0"}]}]},
    {'GroupId': "sg-2", 'GroupName': "db", 'Description': "database",
     'IpPermissions': [{'IpProtocol': "tcp", 'FromPort': 5432, 'ToPort': 5432,
                        'UserIdGroupPairs': [{'GroupId': "sg-3", 'UserId': "123456789012"},
                                             {'GroupId': "sg-9", 'UserId': "210987654321"}],
                        'IpRanges': [{'CidrIp': "10.0.0.0/16"}]}]},
]

RESERVATIONS = [
    {'Instances': [{'InstanceId': "i-1", 'State': {'Name': "running"},
                    'Tags': [{'Key': "env", 'Value': "dev"}, {'Key': "Name", 'Value': "web-1"}],
                    'SecurityGroups': [{'GroupId': "sg-3", 'GroupName': "web"}]},
                   {'InstanceId': "i-2", 'State': {'Name': "stopped"}, 'SecurityGroups': []}]},
    {'Instances': [{'InstanceId': "i-3", 'State': {'Name': "running"},
                    'SecurityGroups': [{'GroupId': "sg-3"}, {'GroupId': "sg-4"}, {'GroupId': "sg-3"}]}]},
]

NETWORK_INTERFACES = [
    {'NetworkInterfaceId': "eni-1", 'Description': "RDSNetworkInterface", 'Status': "in-use", 'VpcId': "vpc-1",
     'Groups': [{'GroupId': "sg-2", 'GroupName': "db"}]},
    {'NetworkInterfaceId': "eni-2", 'Status': "available", 'VpcId': "vpc-1", 'Groups': []},
]


def paginated(**pages_by_operation):
    """ Returns a mock EC2 client whose paginators return the given pages.
        A value that's an exception is raised when the pages are iterated.
        """
    def get_paginator(operation):
        pages = pages_by_operation[operation]
        paginator = Mock()
        if isinstance(pages, Exception):
            paginator.paginate.side_effect = pages
        else:
            paginator.paginate.return_value = iter(pages)
        return paginator
    client = Mock()
    client.get_paginator.side_effect = get_paginator
    return client


def client_error(code, operation):
    return ClientError({'Error': {'Code': code, 'Message': f"{code} happened"}}, operation)


def default_client(**overrides):
    pages = {
        'describe_security_groups': [{'SecurityGroups': SECURITY_GROUPS[:1]}, {'SecurityGroups': SECURITY_GROUPS[1:]}],
        'describe_instances': [{'Reservations': RESERVATIONS}],
        'describe_network_interfaces': [{'NetworkInterfaces': NETWORK_INTERFACES}],
    }
    pages.update(overrides)
    return paginated(**pages)


def test_lookup_reads_all_pages():
    data = ec2.lookup("eu-west-1", client=default_client())
    assert data.region == "eu-west-1"
    assert [g.group_id for g in data.security_groups] == ["sg-1", "sg-2"]
    assert [i.instance_id for i in data.instances] == ["i-1", "i-2", "i-3"]
    assert [n.interface_id for n in data.network_interfaces] == ["eni-1", "eni-2"]


def test_security_group_conversion():
    default, db = [ec2.to_security_group("eu-west-1", sg) for sg in SECURITY_GROUPS]
    assert default.region == "eu-west-1"
    assert default.group_name == "default"
    assert default.vpc_id == "vpc-1"
    assert default.ingress_rules == (SecurityGroupRule("-1", None, None, "sg-1", "123456789012"),)
    assert default.egress_rules == (SecurityGroupRule("-1", None, None, None, None),
                                    SecurityGroupRule("-1", None, None, None, None))
    assert db.vpc_id is None
    assert db.ingress_rules == (SecurityGroupRule("tcp", 5432, 5432, "sg-3", "123456789012"),
                                SecurityGroupRule("tcp", 5432, 5432, "sg-9", "210987654321"),
                                SecurityGroupRule("tcp", 5432, 5432, None, None))
    assert db.egress_rules == ()


def test_instance_conversion():
    i1, i2 = [ec2.to_instance(i) for i in RESERVATIONS[0]['Instances']]
    i3 = ec2.to_instance(RESERVATIONS[1]['Instances'][0])
    assert (i1.name, i1.state, i1.attached_group_ids) == ("web-1", "running", ("sg-3",))
    assert (i2.name, i2.state, i2.attached_group_ids) == (None, "stopped", ())
    assert i3.attached_group_ids == ("sg-3", "sg-4")


def test_network_interface_conversion():
    eni1, eni2 = [ec2.to_network_interface(n) for n in NETWORK_INTERFACES]
    assert eni1 == ("eni-1", "RDSNetworkInterface", "in-use", "vpc-1", ("sg-2",))
    assert eni2.description == ""
    assert eni2.attached_group_ids == ()


def test_empty_region_is_not_an_error():
    client = default_client(describe_security_groups=[{'SecurityGroups': []}],
                            describe_instances=[{'Reservations': []}],
                            describe_network_interfaces=[{}])
    data = ec2.lookup("ap-south-2", client=client)
    assert data.security_groups == []
    assert data.instances == []
    assert data.network_interfaces == []


def test_client_error_becomes_fetch_error():
    client = default_client(describe_network_interfaces=client_error("UnauthorizedOperation", "DescribeNetworkInterfaces"))
    with pytest.raises(FetchError) as exc_info:
        ec2.lookup("eu-west-2", client=client)
    assert exc_info.value.region == "eu-west-2"
    assert exc_info.value.operation == "describe_network_interfaces"
    assert "UnauthorizedOperation" in str(exc_info.value)
    assert isinstance(exc_info.value.__cause__, ClientError)


def test_connection_error_becomes_fetch_error():
    client = default_client(describe_instances=EndpointConnectionError(endpoint_url="https://ec2.xx-nowhere-1.amazonaws.com"))
    with pytest.raises(FetchError) as exc_info:
        ec2.lookup("xx-nowhere-1", client=client)
    assert exc_info.value.operation == "describe_instances"
