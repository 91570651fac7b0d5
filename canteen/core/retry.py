# canteen/core/retry.py
import time
import random
import logging

from sqlalchemy.exc import OperationalError

from canteen.core.config import settings
from canteen.core.errors import LedgerIntegrityError

logger = logging.getLogger(__name__)


class RetryPolicy:
    """
    Retry schedule for compensating actions:
    - retry_limit: how many extra attempts after the first one
    - backoff: 'fixed', 'exponential' or 'jitter'
    - base_delay: delay in seconds before the first retry
    """

    def __init__(self, retry_limit: int = 3, backoff: str = "exponential", base_delay: float = 0.05):
        self.retry_limit = retry_limit
        self.backoff = backoff
        self.base_delay = base_delay

    def should_retry(self, attempt: int) -> bool:
        return attempt < self.retry_limit

    def get_delay(self, attempt: int) -> float:
        if self.backoff == "fixed":
            return self.base_delay
        elif self.backoff == "exponential":
            return self.base_delay * (2 ** attempt)
        elif self.backoff == "jitter":
            return self.base_delay * random.uniform(1, 2 ** attempt)
        else:
            return 0.0


def default_policy() -> RetryPolicy:
    return RetryPolicy(
        retry_limit=settings.COMPENSATION_RETRIES,
        backoff="exponential",
        base_delay=settings.COMPENSATION_BACKOFF,
    )


def retry_with_policy(policy: RetryPolicy, func, *args, description: str = "compensation", **kwargs):
    """
    Runs a compensating action, retrying transient store failures.

    Only OperationalError (lock timeouts, dropped connections) is retried.
    Once the policy gives up the failure escalates to LedgerIntegrityError:
    a compensation that silently disappears leaves stock or money stranded.
    """
    attempt = 0
    while True:
        try:
            return func(*args, **kwargs)
        except OperationalError as e:
            if not policy.should_retry(attempt):
                raise LedgerIntegrityError(
                    f"{description} failed after {attempt + 1} attempts",
                    cause=str(e.orig) if e.orig is not None else str(e),
                ) from e
            delay = policy.get_delay(attempt)
            logger.warning(f"{description}: retry #{attempt + 1} in {delay:.2f}s due to: {e}")
            time.sleep(delay)
            attempt += 1
