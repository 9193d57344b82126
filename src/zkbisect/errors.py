"""Exceptions raised by zkbisect."""


class ZkBisectError(Exception):
    """Base class for every error raised by the package."""


class MalformedCircuit(ZkBisectError):
    """The circuit violates single static assignment (read before write, double write, unknown wire)."""


class CircuitEvaluationError(ZkBisectError):
    """The circuit cannot be evaluated on the supplied inputs.

    Attributes:
        wire (int | None): The wire whose value could not be computed.
    """

    def __init__(self, msg: str, wire: int | None = None):
        super().__init__(msg)
        self.wire = wire


class InverseOfZeroError(CircuitEvaluationError):
    """Inversion of zero in a prime field."""


class CompilationOverflow(ZkBisectError):
    """An operation or a chunk does not fit in the ceilings of the chain.

    Attributes:
        operation: The offending operation.
        resource (str): Either `"script_size"` or `"stack_depth"`.
        measured (int): The measured size (bytes) or depth (elements).
        ceiling (int): The ceiling that was exceeded.
    """

    def __init__(self, operation, resource: str, measured: int, ceiling: int):
        msg = f"Operation {operation} does not fit in a single chunk: "
        msg += f"{resource} {measured} exceeds the ceiling {ceiling}"
        super().__init__(msg)
        self.operation = operation
        self.resource = resource
        self.measured = measured
        self.ceiling = ceiling


class CommitmentMismatch(ZkBisectError):
    """Revealed boundary values do not open the published digest.

    This is a protocol signal, consumed by the dispute engine to decide the outcome of a bisection step.

    Attributes:
        boundary (int): The boundary whose opening failed.
        expected (bytes): The published digest.
        actual (bytes): The digest of the revealed values.
    """

    def __init__(self, boundary: int, expected: bytes, actual: bytes):
        msg = f"Opening of boundary {boundary} does not match its commitment: "
        msg += f"expected {expected.hex()}, got {actual.hex()}"
        super().__init__(msg)
        self.boundary = boundary
        self.expected = expected
        self.actual = actual


class ProtocolTimeout(ZkBisectError):
    """A party missed its response deadline.

    Attributes:
        role: The role that failed to respond.
        deadline (int): The height at which the response window closed.
    """

    def __init__(self, role, deadline: int):
        super().__init__(f"{role} did not respond before height {deadline}")
        self.role = role
        self.deadline = deadline


class ProtocolViolation(ZkBisectError):
    """A message was sent out of turn or does not fit the current dispute state."""


class ExternalIOFailure(ZkBisectError):
    """A collaborator failed to read from or write to the chain."""


class PublicInputMismatch(ZkBisectError):
    """A revealed public input differs from the value agreed in the setup of the dispute.

    Attributes:
        wire (int): The public input wire.
        expected (int): The agreed value.
        actual (int): The revealed value.
    """

    def __init__(self, wire: int, expected: int, actual: int):
        super().__init__(f"Public input {wire} was revealed as {actual}, the agreed value is {expected}")
        self.wire = wire
        self.expected = expected
        self.actual = actual
