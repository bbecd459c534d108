""" Stack Config """
import pulumi

# Explicitly provide config outputs
# NOTE: `aws:` values aren't available as provider won't be initialized yet
# NOTE: no defaults for credentials, ami or key - must come from the stack
_config = pulumi.Config()

AMI_ID = _config.require("ami_id")
AVAILABILITY_ZONE = _config.require("availability_zone")
AWS_REGION = _config.require("aws_region")
INSTANCE_TYPE = _config.require("instance_type")
KEY_NAME = _config.require("key_name")
SERVER_ROLES = _config.require_object("server_roles")

PROJECT_NAME = pulumi.get_project()
STACK_NAME = pulumi.get_stack()
STACK_FULL_NAME = f"{PROJECT_NAME}-{STACK_NAME}"

# Renaming the group replaces it - see servers.py
SECURITY_GROUP_NAME = _config.get("security_group_name") or f"{STACK_FULL_NAME}-sg"

# None falls back to 0.0.0.0/0
INGRESS_CIDR_BLOCKS = _config.get_object("ingress_cidr_blocks")
