"""
Pulumi unit test mocks
- must be installed before any resource is declared
- resource ids are derived from inputs so a renamed group gets a new identity
"""

import pulumi
import pytest

GET_AMI = "aws:ec2/getAmi:getAmi"
GET_KEY_PAIR = "aws:ec2/getKeyPair:getKeyPair"
GET_SUBNET = "aws:ec2/getSubnet:getSubnet"
GET_VPC = "aws:ec2/getVpc:getVpc"

DEFAULT_PUBLIC_IP = "198.51.100.1"


class ServerRolesMocks(pulumi.runtime.Mocks):
    def __init__(self):
        self.reset()

    def reset(self):
        # tokens whose lookups come back empty
        self.missing = set()
        self.public_ips = {}

    def new_resource(self, args: pulumi.runtime.MockResourceArgs):
        outputs = dict(args.inputs)
        resource_id = f"{args.name}-id"
        if args.typ == "aws:ec2/securityGroup:SecurityGroup":
            resource_id = f"sg-{args.inputs['name']}"
        elif args.typ == "aws:ec2/instance:Instance":
            role = args.inputs["tags"]["Role"]
            outputs["publicIp"] = self.public_ips.get(role, DEFAULT_PUBLIC_IP)
        return [resource_id, outputs]

    def call(self, args: pulumi.runtime.MockCallArgs):
        if args.token in self.missing:
            return {}
        if args.token == GET_VPC:
            return {"id": "vpc-0123", "default": True}
        if args.token == GET_SUBNET:
            return {
                "id": "subnet-0123",
                "availabilityZone": args.args["availabilityZone"],
                "vpcId": args.args["vpcId"],
            }
        if args.token == GET_AMI:
            return {
                "id": args.args["filters"][0]["values"][0],
                "architecture": "x86_64",
            }
        if args.token == GET_KEY_PAIR:
            return {"id": "key-0123", "keyName": args.args["keyName"]}
        return {}


MOCKS = ServerRolesMocks()
pulumi.runtime.set_mocks(MOCKS, project="server-roles", stack="test", preview=False)


@pytest.fixture
def mocks():
    MOCKS.reset()
    yield MOCKS
    MOCKS.reset()


@pytest.fixture
def example_role_map():
    return {
        "app-server": [22, 80],
        "db-server": [22, 3306],
        "proxy-server": [22, 8080],
    }
