"""
ROLE MAP
- server_roles config drives everything: one instance per role
- all ports across all roles are opened on a single shared security group
"""

import ipaddress
import re
from collections.abc import Mapping
from dataclasses import dataclass, field

import pulumi
from errors import ValidationError

MIN_PORT = 1
MAX_PORT = 65535

# wide open by default - scope with `ingress_cidr_blocks` in stack config
DEFAULT_INGRESS_CIDR_BLOCKS = ("0.0.0.0/0",)

# role names end up in resource names and tags
ROLE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


@dataclass(frozen=True)
class RoleEntry:
    name: str
    ports: tuple[int, ...]


@dataclass(frozen=True, order=True)
class IngressRule:
    port: int
    source_cidr: str
    protocol: str = "tcp"
    # only used for the rule description
    roles: tuple[str, ...] = field(default=(), compare=False)

    @property
    def description(self) -> str:
        return f"Allow {self.protocol}/{self.port} for {', '.join(self.roles)}"


@dataclass(frozen=True)
class ServerSettings:
    """uniform instance shape shared by every role"""

    ami_id: str
    instance_type: str
    availability_zone: str
    key_name: str


@dataclass(frozen=True)
class InstanceSpec:
    role_name: str
    ami_id: str
    instance_type: str
    availability_zone: str
    key_name: str
    subnet_id: pulumi.Input[str]
    security_group_ids: tuple
    tags: dict = field(hash=False)


def _validate_port(role_name: str, port) -> int:
    # bool is an int subclass - `true` in yaml is never a port
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError(
            f"role '{role_name}': port {port!r} is not an integer"
        )
    if not MIN_PORT <= port <= MAX_PORT:
        raise ValidationError(
            f"role '{role_name}': port {port} outside {MIN_PORT}-{MAX_PORT}"
        )
    return port


def load_role_map(raw) -> list[RoleEntry]:
    """
    Validate a `role_name -> [ports]` mapping into RoleEntry's sorted by name.
    Raises ValidationError on anything malformed.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError(
            f"server_roles must be a mapping of role name to ports, got {type(raw).__name__}"
        )
    if not raw:
        raise ValidationError("server_roles must define at least one role")

    entries = []
    for role_name, ports in raw.items():
        if not isinstance(role_name, str) or not ROLE_NAME_PATTERN.match(role_name):
            raise ValidationError(f"invalid role name {role_name!r}")
        if not isinstance(ports, (list, tuple)):
            raise ValidationError(f"role '{role_name}': ports must be a list")
        if not ports:
            raise ValidationError(f"role '{role_name}': at least one port is required")

        unique_ports = []
        for port in ports:
            port = _validate_port(role_name, port)
            if port not in unique_ports:
                unique_ports.append(port)

        if len(unique_ports) != len(ports):
            pulumi.log.warn(
                f"role '{role_name}' lists duplicate ports, using {unique_ports}"
            )
        entries.append(RoleEntry(name=role_name, ports=tuple(unique_ports)))

    return sorted(entries, key=lambda entry: entry.name)


def validate_cidr_blocks(raw) -> tuple[str, ...]:
    """normalize ingress source ranges, dropping dupes"""
    if raw is None:
        return DEFAULT_INGRESS_CIDR_BLOCKS
    if isinstance(raw, str) or not isinstance(raw, (list, tuple)) or not raw:
        raise ValidationError("ingress_cidr_blocks must be a non-empty list")

    blocks = []
    for block in raw:
        try:
            network = ipaddress.IPv4Network(block)
        except (ValueError, TypeError) as exc:
            raise ValidationError(f"invalid ingress cidr block {block!r}: {exc}") from exc
        if str(network) not in blocks:
            blocks.append(str(network))
    return tuple(blocks)


def expand_ingress_rules(
    roles: list[RoleEntry],
    cidr_blocks: tuple[str, ...] = DEFAULT_INGRESS_CIDR_BLOCKS,
) -> list[IngressRule]:
    """
    Flatten roles into one ingress rule per (port, source).
    Ports shared by several roles collapse to a single rule.
    """
    roles_by_port: dict[int, set[str]] = {}
    for entry in roles:
        for port in entry.ports:
            roles_by_port.setdefault(port, set()).add(entry.name)

    return sorted(
        IngressRule(
            port=port,
            source_cidr=cidr,
            roles=tuple(sorted(role_names)),
        )
        for port, role_names in roles_by_port.items()
        for cidr in cidr_blocks
    )


def build_instance_specs(
    roles: list[RoleEntry],
    settings: ServerSettings,
    subnet_id: pulumi.Input[str],
    security_group_ids: list,
) -> list[InstanceSpec]:
    """one identically shaped instance per role - only tags differ"""
    return [
        InstanceSpec(
            role_name=entry.name,
            ami_id=settings.ami_id,
            instance_type=settings.instance_type,
            availability_zone=settings.availability_zone,
            key_name=settings.key_name,
            subnet_id=subnet_id,
            security_group_ids=tuple(security_group_ids),
            tags={"Name": entry.name, "Role": entry.name},
        )
        for entry in roles
    ]
