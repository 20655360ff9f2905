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


""" Builds the lookup tables used to classify security groups. These are built
    once per region from the bulk datasets, so that classifying a group is a
    handful of dictionary lookups rather than a scan of every instance.
    """

from .core import (EGRESS, INGRESS, AttachedInstance, AttachedInterface, GroupReference,
                   is_default_group)


class UsageIndex:
    """ Maintains the four lookups: default groups, and the instances, network
        interfaces, and rules that point at each group ID.

        References are indexed by the group being referenced, not the group that
        holds the rule. The referenced ID doesn't have to belong to a known group
        (it may live in another account or VPC); it's recorded regardless.
        """

    def __init__(self):
        self.default_group_ids = set()
        self.instances_by_group = {}
        self.interfaces_by_group = {}
        self.references_by_group = {}

    def add_security_group(self, group):
        if is_default_group(group):
            self.default_group_ids.add(group.group_id)
        self._add_references(group, INGRESS, group.ingress_rules)
        self._add_references(group, EGRESS, group.egress_rules)
        return self

    def add_instance(self, instance):
        attached = AttachedInstance(instance.instance_id, instance.name, instance.state)
        for group_id in instance.attached_group_ids:
            self.instances_by_group.setdefault(group_id, []).append(attached)
        return self

    def add_network_interface(self, eni):
        attached = AttachedInterface(eni.interface_id, eni.description, eni.status)
        for group_id in eni.attached_group_ids:
            self.interfaces_by_group.setdefault(group_id, []).append(attached)
        return self

    def is_default(self, group_id):
        return group_id in self.default_group_ids

    def instances_for(self, group_id):
        return tuple(self.instances_by_group.get(group_id, ()))

    def interfaces_for(self, group_id):
        return tuple(self.interfaces_by_group.get(group_id, ()))

    def references_to(self, group_id):
        return tuple(self.references_by_group.get(group_id, ()))

    def _add_references(self, group, direction, rules):
        for rule in rules:
            if not rule.referenced_group_id:
                continue
            ref = GroupReference(rule.referenced_group_id, group.group_id, group.group_name,
                                 direction, rule.protocol, rule.from_port, rule.to_port)
            self.references_by_group.setdefault(rule.referenced_group_id, []).append(ref)


def build(security_groups, instances, network_interfaces):
    """ Builds an index from the three datasets of a single region. Performs no I/O.
        """
    result = UsageIndex()
    for group in security_groups:
        result.add_security_group(group)
    for instance in instances:
        result.add_instance(instance)
    for eni in network_interfaces:
        result.add_network_interface(eni)
    return result
