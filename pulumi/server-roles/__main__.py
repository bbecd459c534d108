"""Role driven EC2 servers Pulumi program"""

import pulumi
import pulumi_aws as aws
from network import resolve_references
from outputs import export_outputs
from roles import ServerSettings, load_role_map, validate_cidr_blocks
from servers import ServerRoles
from stack_config import (
    AMI_ID,
    AVAILABILITY_ZONE,
    AWS_REGION,
    INGRESS_CIDR_BLOCKS,
    INSTANCE_TYPE,
    KEY_NAME,
    SECURITY_GROUP_NAME,
    SERVER_ROLES,
    STACK_FULL_NAME,
)

"""
Validate config before touching AWS
- bad ports / cidrs fail here with ValidationError
"""
server_roles = load_role_map(SERVER_ROLES)
cidr_blocks = validate_cidr_blocks(INGRESS_CIDR_BLOCKS)

settings = ServerSettings(
    ami_id=AMI_ID,
    instance_type=INSTANCE_TYPE,
    availability_zone=AVAILABILITY_ZONE,
    key_name=KEY_NAME,
)

# Explicit provider so region comes from our own config
aws_provider = aws.Provider(resource_name=f"{STACK_FULL_NAME}-aws", region=AWS_REGION)

"""
Default VPC / subnet for the AZ, ami and key pair
- unresolved references fail here with MissingReferenceError
"""
refs = resolve_references(settings, opts=pulumi.InvokeOptions(provider=aws_provider))

pulumi.log.info(
    f"declaring {len(server_roles)} servers: {', '.join(role.name for role in server_roles)}"
)

servers = ServerRoles(
    name=STACK_FULL_NAME,
    roles=server_roles,
    settings=settings,
    security_group_name=SECURITY_GROUP_NAME,
    vpc_id=refs.vpc_id,
    subnet_id=refs.subnet_id,
    cidr_blocks=cidr_blocks,
    opts=pulumi.ResourceOptions(providers=[aws_provider]),
)

export_outputs(servers)
