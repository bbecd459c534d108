""" Stack outputs """
from collections.abc import Mapping

import pulumi
from errors import MissingReferenceError
from servers import ServerRoles


def project_server_ips(public_ips: Mapping[str, str | None]) -> dict[str, str]:
    """role -> public ip, fails if any instance came back without an address"""
    missing = sorted(role for role, ip in public_ips.items() if not ip)
    if missing:
        raise MissingReferenceError(
            "public ip", ", ".join(missing), "instance has no public address"
        )
    return {role: public_ips[role] for role in sorted(public_ips)}


def server_ips_output(servers: ServerRoles) -> pulumi.Output:
    return pulumi.Output.all(
        **{role: instance.public_ip for role, instance in servers.instances.items()}
    ).apply(project_server_ips)


def export_outputs(servers: ServerRoles):
    pulumi.export("server_ips", server_ips_output(servers))
    # read from the live group so a rename never exports the previous name
    pulumi.export("security_group_name", servers.security_group.name)
