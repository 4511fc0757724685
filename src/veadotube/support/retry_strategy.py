from veadotube.support.mixins import CommonEqualityMixin, StringerMixin


class RetryStrategy:
    """
    Decides how long to wait before the given reconnection attempt, and when to stop trying.
    The base strategy never retries.
    """
    max_attempts = 0

    def __call__(self, attempt):
        """
        :param attempt: the 1-based number of the attempt about to be scheduled
        :return: the delay in seconds before that attempt
        """
        return 0

    def exhausted(self, attempts):
        """
        :param attempts: the number of attempts made so far
        :return: True when no further attempts should be made
        """
        return attempts >= self.max_attempts


class LinearRetryStrategy(RetryStrategy, CommonEqualityMixin, StringerMixin):
    """
    Waits a linearly increasing time between attempts, base_delay * attempt, for at most max_attempts.

    >>> retry = LinearRetryStrategy(0.5, 3)
    >>> [retry(n) for n in (1, 2, 3)]
    [0.5, 1.0, 1.5]
    >>> retry.exhausted(2), retry.exhausted(3)
    (False, True)
    """

    def __init__(self, base_delay, max_attempts):
        """
        :param base_delay: The delay in seconds before the first attempt.
        :param max_attempts: The number of attempts after which retrying stops.
        """
        self.base_delay = base_delay
        self.max_attempts = max_attempts

    def __call__(self, attempt):
        return self.base_delay * attempt
