from unittest import TestCase

from hamcrest import is_, assert_that, equal_to

from veadotube.support.retry_strategy import LinearRetryStrategy, RetryStrategy


class RetryStrategyTest(TestCase):
    def test_is_zero(self):
        assert_that(RetryStrategy()(1), is_(0))

    def test_never_retries(self):
        assert_that(RetryStrategy().exhausted(0), is_(True))


class LinearRetryStrategyTest(TestCase):

    def setUp(self):
        self.sut = LinearRetryStrategy(2, 5)

    def test_delay_increases_linearly(self):
        assert_that([self.sut(k) for k in range(1, 6)], is_([2, 4, 6, 8, 10]))

    def test_exhausted_at_max_attempts(self):
        assert_that(self.sut.exhausted(4), is_(False))
        assert_that(self.sut.exhausted(5), is_(True))
        assert_that(self.sut.exhausted(6), is_(True))

    def test_zero_attempts_is_always_exhausted(self):
        assert_that(LinearRetryStrategy(1, 0).exhausted(0), is_(True))

    def test_equality(self):
        assert_that(LinearRetryStrategy(1, 2), is_(equal_to(LinearRetryStrategy(1, 2))))
        assert_that(LinearRetryStrategy(1, 2) == LinearRetryStrategy(1, 3), is_(False))
