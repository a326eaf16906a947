class AuthorizationError(Exception):
    """Base class for every failure that ends an authorization attempt."""

    kind = "error"
    retryable = False

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class TransportError(AuthorizationError):
    """The document store or identity provider could not be reached."""

    kind = "transport"
    retryable = True


class DocumentStoreError(TransportError):
    pass


class DocumentNotFound(DocumentStoreError):
    kind = "not_found"
    retryable = False


class IdentityProviderUnavailable(TransportError):
    pass


class AccessDenied(AuthorizationError):
    kind = "access"


class InvalidCredentials(AccessDenied):
    kind = "credentials"


class TenantAccessDenied(AccessDenied):
    def __init__(self) -> None:
        super().__init__(
            "You don't have access to this restaurant. "
            "Please check your credentials or contact the restaurant owner."
        )


class DeviceStateError(AuthorizationError):
    kind = "device"


class DeviceBoundElsewhere(DeviceStateError):
    kind = "bound_elsewhere"

    def __init__(self, tenant_id: str) -> None:
        super().__init__(
            "This device is already assigned to another restaurant. Please use a different device "
            "or contact the restaurant owner to reassign this device."
        )
        self.tenant_id = tenant_id


class DeviceRegistered(DeviceStateError):
    kind = "registered"

    def __init__(self) -> None:
        super().__init__("New device registered. Please contact the restaurant owner to activate this device.")


class DeviceNotActivated(DeviceStateError):
    kind = "not_activated"

    def __init__(self) -> None:
        super().__init__("This device is not activated. Please contact the restaurant owner.")


class RoleConflictError(DeviceStateError):
    kind = "role_conflict"

    def __init__(self, bound_role, table_number: int = 0) -> None:
        self.bound_role = bound_role
        self.table_number = table_number
        label = bound_role.value
        if table_number:
            label = f"{label} (table {table_number})"
        super().__init__(
            f"This device is already registered as {label} in this restaurant. "
            "Ask the restaurant owner to reassign it before signing in with a different role."
        )
