import sys
import os

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
from prinpos.ftypes import Maybe, Either, Rejection


# ТЕСТЫ Maybe
def test_maybe_some_and_none_behavior():
    just = Maybe.some(42)
    nothing = Maybe.nothing()

    assert not just.is_none()
    assert nothing.is_none()
    assert just.get_or_else(0) == 42
    assert nothing.get_or_else(0) == 0


def test_maybe_map_and_bind():
    maybe_val = Maybe.some(10)
    mapped = maybe_val.map(lambda x: x * 2)
    bound = maybe_val.bind(lambda x: Maybe.some(x + 5))

    assert mapped.get_or_else(0) == 20
    assert bound.get_or_else(0) == 15
    assert Maybe.nothing().map(lambda x: x * 2).is_none()


def test_maybe_to_either():
    missing = Rejection("not_found", "Order o1 not found")

    assert Maybe.some(1).to_either(missing).get_or_else(0) == 1
    assert Maybe.from_optional(None).to_either(missing).error() == missing


# ТЕСТЫ Either
def test_either_left_and_right_behavior():
    right_val = Either.right(100)
    left_val = Either.left("error")

    assert right_val.is_right
    assert not left_val.is_right
    assert right_val.get_or_else(0) == 100
    assert left_val.get_or_else(0) == 0
    assert right_val.error() is None


def test_either_map_and_bind():
    val = Either.right(5)
    mapped = val.map(lambda x: x * 2)
    bound = val.bind(lambda x: Either.right(x + 3))

    assert mapped.get_or_else(0) == 10
    assert bound.get_or_else(0) == 8


def test_reject_short_circuits_chain():
    rejected = Either.reject("invalid_amount", "Amount must be greater than zero")
    chained = rejected.map(lambda x: x + 1).bind(lambda x: Either.right(x * 2))

    assert chained.is_left
    assert chained.error().code == "invalid_amount"
    assert str(chained.error()) == "Amount must be greater than zero"
