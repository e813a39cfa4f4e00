import pytest

from krpsim.cancellation import CancellationToken
from krpsim.model import Problem, Process


@pytest.fixture
def apple_problem():
    """Ten euros, apples at two euros each."""
    return Problem(
        stocks={"euro": 10},
        processes=[Process("buy_apple", inputs=[("euro", 2)], outputs=[("apple", 1)], duration=1)],
        objectives=["apple"],
    )


@pytest.fixture
def bakery_problem():
    """Finite two-stage chain: flour from euros, bread from flour."""
    return Problem(
        stocks={"euro": 6},
        processes=[
            Process("buy_flour", inputs=[("euro", 2)], outputs=[("flour", 2)], duration=1),
            Process("bake", inputs=[("flour", 3)], outputs=[("bread", 1)], duration=2),
        ],
        objectives=["bread"],
    )


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def cancelled_token():
    token = CancellationToken()
    token.cancel()
    return token
