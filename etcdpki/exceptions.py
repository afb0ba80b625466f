class EtcdPKIError(Exception):
    pass


class ObjectNotFoundError(EtcdPKIError):
    def __init__(self, location) -> None:
        self.location = location
        super().__init__(f"{location} not found")


class TransientError(EtcdPKIError):
    """
    Retryable failure. Every write is conditioned on a version token, so retrying from a
    fresh read is always safe.
    """


class ObjectConflictError(TransientError):
    def __init__(self, location) -> None:
        self.location = location
        super().__init__(f"{location} was modified concurrently")


class TopologyLookupError(TransientError):
    pass


class MissingDependencyError(EtcdPKIError):
    def __init__(self, location, message: str = "") -> None:
        self.location = location
        super().__init__(message or f"{location} does not exist yet")


class CertificateParseError(EtcdPKIError):
    pass


class KeyGenerationError(EtcdPKIError):
    pass


class ObjectStoreError(EtcdPKIError):
    """A non-retryable read or write failure against the object store."""
