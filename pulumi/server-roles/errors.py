""" Errors surfaced to the operator - nothing here is retried """


class ServerRolesError(Exception):
    """base for every error raised by the server-roles program"""


class ValidationError(ServerRolesError):
    """malformed server_roles map, port or cidr block"""


class MissingReferenceError(ServerRolesError):
    """a VPC, subnet, AMI, key pair or upstream output could not be resolved"""

    def __init__(self, kind: str, ref: str, detail: str | None = None):
        self.kind = kind
        self.ref = ref
        message = f"unable to resolve {kind} '{ref}'"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class ProviderError(ServerRolesError):
    """the engine or AWS API rejected a stack operation"""

    def __init__(self, operation: str, stack_name: str, detail: str):
        self.operation = operation
        self.stack_name = stack_name
        super().__init__(f"{operation} failed for stack '{stack_name}': {detail}")
