"""Tagged success/failure values.

Operations with expected failure modes return a ``Result``: either ``Ok``
carrying the value or ``Err`` carrying a classified exception instance. The
exception is returned, not raised; ``unwrap()`` raises it on demand.

Example:
    >>> result = await execute(InvocationRequest("dcmdump", ("file.dcm",)))
    >>> match result:
    ...     case Ok(value):
    ...         print(value.stdout)
    ...     case Err(error):
    ...         print(f"failed: {error}")
"""

from dataclasses import dataclass
from typing import Generic, Literal, NoReturn, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=Exception)


@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome."""

    value: T

    @property
    def ok(self) -> Literal[True]:
        return True

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying a classified error."""

    error: E

    @property
    def ok(self) -> Literal[False]:
        return False

    def unwrap(self) -> NoReturn:
        raise self.error


Result = Ok[T] | Err[Exception]
