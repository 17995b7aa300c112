from dataclasses import dataclass, field
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar, Union
from .exceptions import ThreadsAPIError
from ..utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")

APP_DEFAULT_LABEL = "app-default"

def version_label(version: str) -> str:
    """Render a version tag, showing the unversioned endpoint as app-default."""
    return version or APP_DEFAULT_LABEL

@dataclass
class CandidateFailure:
    """Why one version candidate was rejected."""
    version: str
    message: str
    token_invalid: bool = False

    def __str__(self) -> str:
        return f"[{version_label(self.version)}] {self.message}"

@dataclass
class FallbackResult(Generic[T]):
    """Winning candidate's value, or every candidate's failure."""
    value: Optional[T] = None
    api_version: Optional[str] = None
    failures: List[CandidateFailure] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.api_version is not None

    @property
    def token_invalid(self) -> bool:
        return any(failure.token_invalid for failure in self.failures)

    def unwrap(self, context: str) -> T:
        """
        Return the value or raise one aggregated error.

        Args:
            context: Prefix naming the operation that failed

        Raises:
            ThreadsAPIError: If no candidate succeeded
        """
        if self.ok:
            return self.value
        details = "; ".join(str(failure) for failure in self.failures) or "no API version configured"
        raise ThreadsAPIError(f"{context}: {details}", token_invalid=self.token_invalid)

Attempt = Callable[[str], Awaitable[Union[T, CandidateFailure]]]

async def first_successful(versions: List[str], attempt: Attempt) -> FallbackResult:
    """
    Try each version in order until one attempt succeeds.

    Candidates run strictly one after another; an attempt may create
    provider-side objects, so they never run concurrently.

    Args:
        versions: Ordered version tags
        attempt: Coroutine returning a value or a CandidateFailure

    Returns:
        FallbackResult with the first value and its version, or all failures
    """
    result: FallbackResult = FallbackResult()
    for version in versions:
        outcome = await attempt(version)
        if isinstance(outcome, CandidateFailure):
            logger.debug(f"Version candidate {version_label(version)} failed: {outcome.message}")
            result.failures.append(outcome)
            continue
        logger.debug(f"Version candidate {version_label(version)} succeeded")
        result.value = outcome
        result.api_version = version
        return result
    return result
