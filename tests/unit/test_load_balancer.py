from collections import Counter

import pytest

from report_ai.domain.exceptions import NoProviderAvailableError
from report_ai.domain.models import LoadBalanceStrategy, ProviderSpec
from report_ai.routing.load_balancer import LoadBalancer
from report_ai.routing.strategies.least_used_strategy import LeastUsedStrategy
from report_ai.routing.strategies.priority_strategy import PriorityStrategy
from report_ai.routing.strategies.round_robin_strategy import RoundRobinStrategy


def _spec(name: str, priority: int, active: bool = True) -> ProviderSpec:
    return ProviderSpec(
        name=name,
        display_name=name.upper(),
        endpoint=f"https://{name}.test/v1/chat/completions",
        model="m",
        priority=priority,
        active=active,
    )


@pytest.fixture
def providers():
    return [_spec("a", 1), _spec("b", 2), _spec("c", 3)]


def test_priority_strategy_picks_lowest_priority(providers):
    balancer = LoadBalancer()
    assert balancer.select_provider(list(reversed(providers))).name == "a"


def test_failing_provider_is_excluded_after_five_failures(providers):
    balancer = LoadBalancer()
    for _ in range(4):
        balancer.record_failure("a")
    assert balancer.select_provider(providers, "priority").name == "a"

    balancer.record_failure("a")
    for _ in range(3):
        assert balancer.select_provider(providers, "priority").name == "b"
    assert balancer.is_healthy("a") is False

    balancer.reset_failures("a")
    assert balancer.select_provider(providers, "priority").name == "a"


def test_round_robin_is_fair(providers):
    balancer = LoadBalancer(LoadBalanceStrategy.ROUND_ROBIN, clock=lambda: 42.0)

    picks = [balancer.select_provider(providers).name for _ in range(9)]

    assert Counter(picks) == {"a": 3, "b": 3, "c": 3}
    assert picks[:3] == ["a", "b", "c"]


def test_least_used_prefers_smallest_request_count(providers):
    balancer = LoadBalancer()
    balancer.record_request("a")
    balancer.record_request("a")
    balancer.record_request("b")

    assert balancer.select_provider(providers, LoadBalanceStrategy.LEAST_USED).name == "c"
    assert balancer.request_count("a") == 2


def test_no_eligible_provider_raises(providers):
    balancer = LoadBalancer(failure_threshold=1)
    for provider in providers:
        balancer.record_failure(provider.name)

    with pytest.raises(NoProviderAvailableError):
        balancer.select_provider(providers)
    with pytest.raises(NoProviderAvailableError):
        balancer.select_provider([_spec("off", 1, active=False)])


def test_snapshot_is_a_copy(providers):
    balancer = LoadBalancer()
    balancer.record_failure("a")
    snapshot = balancer.snapshot()
    snapshot["a"].failure_count = 99
    assert balancer.failure_count("a") == 1


def test_strategies_break_ties_by_input_order(providers):
    tied = [_spec("x", 1), _spec("y", 1)]
    assert PriorityStrategy().choose(tied, {}).name == "x"
    assert LeastUsedStrategy().choose(tied, {}).name == "x"
    assert RoundRobinStrategy().choose(tied, {}).name == "x"
    assert RoundRobinStrategy().name() == "round_robin"
