"""
Stack lifecycle: validate -> preview -> up -> destroy
- thin wrapper around the Pulumi Automation API for scripts / CI
- state, locking, diffing and replacement ordering stay with the engine
- nothing is retried, re-run `up` after fixing the reported problem

usage: python lifecycle.py <validate|preview|up|destroy|outputs> --stack dev
"""

import argparse
import json
import logging
import os
import sys

from pulumi import automation as auto
from errors import ProviderError, ServerRolesError, ValidationError
from roles import expand_ingress_rules, load_role_map, validate_cidr_blocks

logger = logging.getLogger(__name__)

PROGRAM_DIR = os.path.dirname(os.path.abspath(__file__))
PROJECT_NAME = "server-roles"

# must match the `require` calls in stack_config.py
REQUIRED_KEYS = (
    "aws_region",
    "availability_zone",
    "instance_type",
    "ami_id",
    "key_name",
    "server_roles",
)


def select_stack(stack_name: str, work_dir: str = PROGRAM_DIR) -> auto.Stack:
    """init: create the stack on first use, otherwise select it"""
    try:
        return auto.create_or_select_stack(stack_name=stack_name, work_dir=work_dir)
    except auto.CommandError as exc:
        raise ProviderError("init", stack_name, str(exc)) from exc


def _run(operation: str, stack: auto.Stack, func, **kwargs):
    try:
        return func(**kwargs)
    except auto.CommandError as exc:
        raise ProviderError(operation, stack.name, str(exc)) from exc


def _object_config(config: dict, key: str):
    value = config.get(f"{PROJECT_NAME}:{key}")
    if value is None:
        return None
    try:
        return json.loads(value.value)
    except ValueError as exc:
        raise ValidationError(f"{key} is not a structured config value: {exc}") from exc


def validate(stack: auto.Stack) -> dict:
    """check required keys, server_roles and ingress_cidr_blocks without calling AWS"""
    config = _run("validate", stack, stack.get_all_config)
    missing = [
        f"{PROJECT_NAME}:{key}"
        for key in REQUIRED_KEYS
        if f"{PROJECT_NAME}:{key}" not in config
    ]
    if missing:
        raise ValidationError(f"missing required config: {', '.join(missing)}")
    roles = load_role_map(_object_config(config, "server_roles"))
    cidr_blocks = validate_cidr_blocks(_object_config(config, "ingress_cidr_blocks"))
    ports = sorted({rule.port for rule in expand_ingress_rules(roles, cidr_blocks)})
    logger.info(
        "stack %s is valid: roles=%s ports=%s sources=%s",
        stack.name,
        [role.name for role in roles],
        ports,
        list(cidr_blocks),
    )
    return {
        "roles": {role.name: list(role.ports) for role in roles},
        "ports": ports,
        "ingress_cidr_blocks": list(cidr_blocks),
    }


def preview(stack: auto.Stack) -> dict:
    result = _run("preview", stack, stack.preview, on_output=logger.info)
    return dict(result.change_summary)


def up(stack: auto.Stack) -> dict:
    result = _run("up", stack, stack.up, on_output=logger.info)
    return {name: output.value for name, output in result.outputs.items()}


def destroy(stack: auto.Stack) -> dict:
    result = _run("destroy", stack, stack.destroy, on_output=logger.info)
    return dict(result.summary.resource_changes or {})


def outputs(stack: auto.Stack) -> dict:
    result = _run("outputs", stack, stack.outputs)
    return {name: output.value for name, output in result.items()}


COMMANDS = {
    "validate": validate,
    "preview": preview,
    "up": up,
    "destroy": destroy,
    "outputs": outputs,
}


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="server-roles stack lifecycle")
    parser.add_argument("command", choices=list(COMMANDS))
    parser.add_argument("--stack", required=True, help="pulumi stack name, e.g. dev")
    parser.add_argument("--work-dir", default=PROGRAM_DIR)
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )

    try:
        stack = select_stack(args.stack, work_dir=args.work_dir)
        result = COMMANDS[args.command](stack)
    except ServerRolesError as exc:
        logger.error("%s: %s", type(exc).__name__, exc)
        return 1

    print(json.dumps(result, indent=2, sort_keys=True))
    return 0


if __name__ == "__main__":
    sys.exit(main())
