"""
Role driven security group + instances
- one shared security group opening every role's ports
- one identically shaped instance per role
"""

import pulumi
import pulumi_aws as aws
from roles import (
    DEFAULT_INGRESS_CIDR_BLOCKS,
    RoleEntry,
    ServerSettings,
    build_instance_specs,
    expand_ingress_rules,
)


class ServerRoles(pulumi.ComponentResource):
    """security group, its rules and one instance per server role"""

    def __init__(
        self,
        name: str,
        roles: list[RoleEntry],
        settings: ServerSettings,
        security_group_name: str,
        vpc_id: str,
        subnet_id: str,
        cidr_blocks: tuple[str, ...] = DEFAULT_INGRESS_CIDR_BLOCKS,
        opts: pulumi.ResourceOptions = None,
    ):
        super().__init__(
            t="server-roles:ec2:ServerRoles", name=name, props=None, opts=opts
        )

        """
        SECURITY GROUP
        - logical name is fixed, `name` comes from config
        - renaming is a replacement: create new -> repoint instances -> delete old
        - NEVER delete_before_replace here, instances would sit without a group
        - description is immutable on AWS so it does not mention roles
        """

        self.security_group = aws.ec2.SecurityGroup(
            resource_name=f"{name}-sg",
            name=security_group_name,
            description="Server roles security group",
            vpc_id=vpc_id,
            tags={"Name": security_group_name},
            opts=pulumi.ResourceOptions(parent=self, delete_before_replace=False),
        )

        """
        SECURITY GROUP RULES
        - ALWAYS separate aws.vpc rule resources, never inline rules
        - ports shared between roles collapse to one rule
        """

        self.ingress_rules = []
        for rule in expand_ingress_rules(roles, cidr_blocks):
            rule_name = f"{name}-sgr-{rule.port}-{rule.source_cidr.replace('/', '-')}-ingress"
            self.ingress_rules.append(
                aws.vpc.SecurityGroupIngressRule(
                    resource_name=rule_name,
                    description=rule.description,
                    cidr_ipv4=rule.source_cidr,
                    from_port=rule.port,
                    ip_protocol=rule.protocol,
                    security_group_id=self.security_group.id,
                    to_port=rule.port,
                    tags={"Name": rule_name},
                    opts=pulumi.ResourceOptions(parent=self),
                )
            )

        self.egress_rule = aws.vpc.SecurityGroupEgressRule(
            resource_name=f"{name}-sgr-all-ipv4-egress",
            description="Allow all IPv4 egress",
            cidr_ipv4="0.0.0.0/0",
            ip_protocol="-1",
            security_group_id=self.security_group.id,
            tags={"Name": f"{name}-sgr-all-ipv4-egress"},
            opts=pulumi.ResourceOptions(parent=self),
        )

        """
        INSTANCES
        - vpc_security_group_ids is updated in place, `security_groups` would replace
        - instances don't depend on each other so the engine creates them in parallel
        """

        self.instances = {}
        for spec in build_instance_specs(
            roles=roles,
            settings=settings,
            subnet_id=subnet_id,
            security_group_ids=[self.security_group.id],
        ):
            self.instances[spec.role_name] = aws.ec2.Instance(
                resource_name=f"{name}-{spec.role_name}",
                ami=spec.ami_id,
                availability_zone=spec.availability_zone,
                instance_type=spec.instance_type,
                key_name=spec.key_name,
                subnet_id=spec.subnet_id,
                tags=spec.tags,
                vpc_security_group_ids=list(spec.security_group_ids),
                opts=pulumi.ResourceOptions(parent=self),
            )

        self.register_outputs(
            {
                "egress_rule": self.egress_rule,
                "ingress_rules": self.ingress_rules,
                "instances": self.instances,
                "security_group": self.security_group,
            }
        )
