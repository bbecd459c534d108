"""
DATA SOURCES
- default VPC + default subnet for the configured AZ
- ami and key pair are looked up up-front so a typo fails before any create
NOTE: nothing is retried - re-running `pulumi up` is the fix
"""

from dataclasses import dataclass

import pulumi
import pulumi_aws as aws
from errors import MissingReferenceError
from roles import ServerSettings


@dataclass(frozen=True)
class ResolvedReferences:
    vpc_id: str
    subnet_id: str
    ami_id: str
    key_name: str


def lookup_default_vpc(opts: pulumi.InvokeOptions = None) -> str:
    try:
        vpc = aws.ec2.get_vpc(default=True, opts=opts)
    except Exception as exc:
        raise MissingReferenceError("vpc", "default", str(exc)) from exc
    if not vpc.id:
        raise MissingReferenceError("vpc", "default", "no default VPC in region")
    return vpc.id


def lookup_default_subnet(
    vpc_id: str, availability_zone: str, opts: pulumi.InvokeOptions = None
) -> str:
    try:
        subnet = aws.ec2.get_subnet(
            availability_zone=availability_zone,
            default_for_az=True,
            vpc_id=vpc_id,
            opts=opts,
        )
    except Exception as exc:
        raise MissingReferenceError("subnet", availability_zone, str(exc)) from exc
    if not subnet.id:
        raise MissingReferenceError(
            "subnet", availability_zone, f"no default subnet in {vpc_id}"
        )
    return subnet.id


def lookup_ami(ami_id: str, opts: pulumi.InvokeOptions = None) -> str:
    try:
        ami = aws.ec2.get_ami(
            filters=[{"name": "image-id", "values": [ami_id]}],
            opts=opts,
        )
    except Exception as exc:
        raise MissingReferenceError("ami", ami_id, str(exc)) from exc
    if ami.id != ami_id:
        raise MissingReferenceError("ami", ami_id, f"lookup returned {ami.id!r}")
    return ami.id


def lookup_key_pair(key_name: str, opts: pulumi.InvokeOptions = None) -> str:
    try:
        key_pair = aws.ec2.get_key_pair(key_name=key_name, opts=opts)
    except Exception as exc:
        raise MissingReferenceError("key pair", key_name, str(exc)) from exc
    if key_pair.key_name != key_name:
        raise MissingReferenceError(
            "key pair", key_name, f"lookup returned {key_pair.key_name!r}"
        )
    return key_pair.key_name


def resolve_references(
    settings: ServerSettings, opts: pulumi.InvokeOptions = None
) -> ResolvedReferences:
    """resolve everything instances need before declaring any resource"""
    vpc_id = lookup_default_vpc(opts=opts)
    subnet_id = lookup_default_subnet(vpc_id, settings.availability_zone, opts=opts)
    refs = ResolvedReferences(
        vpc_id=vpc_id,
        subnet_id=subnet_id,
        ami_id=lookup_ami(settings.ami_id, opts=opts),
        key_name=lookup_key_pair(settings.key_name, opts=opts),
    )
    pulumi.log.info(
        f"using vpc {refs.vpc_id}, subnet {refs.subnet_id} in {settings.availability_zone}"
    )
    return refs
