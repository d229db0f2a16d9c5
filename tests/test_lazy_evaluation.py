import time

import pytest

from infinite import count
from lazy import LazySequence


class TestLazyEvaluation:
    """Test core lazy evaluation functionality"""

    def test_deferred_execution(self):
        """Test that operations are not executed immediately"""
        call_count = 0

        def track_calls(x):
            nonlocal call_count
            call_count += 1
            return x * 2

        # Create lazy sequence - should not execute yet
        lazy_seq = LazySequence(range(10)).map(track_calls)
        assert call_count == 0, "Operations should not execute during definition"

        result = lazy_seq.take(3).to_list()
        # take() stops before pulling a fourth element
        assert call_count == 3, f"Expected exactly 3 calls, got {call_count}"
        assert result == [0, 2, 4], f"Unexpected result: {result}"

    def test_lazy_chaining(self):
        """Test that chained operations remain lazy"""
        lazy_seq = (
            LazySequence(range(100))
            .map(lambda x: x * x)
            .filter(lambda x: x % 2 == 0)
            .skip(5)
            .take(10)
        )

        assert len(lazy_seq._ops) == 4, "Should hold four pending stages"

        result = lazy_seq.to_list()
        assert len(result) == 10, f"Expected 10 items, got {len(result)}"

    def test_multiple_consumption(self):
        """Test that sequences over re-iterable sources can be consumed multiple times"""
        lazy_seq = LazySequence(range(5)).map(lambda x: x * 2)

        result1 = lazy_seq.to_list()
        result2 = lazy_seq.to_list()

        assert result1 == result2, "Multiple consumptions should yield same result"
        assert result1 == [0, 2, 4, 6, 8], f"Unexpected result: {result1}"

    def test_one_shot_source_consumed_once(self):
        lazy_seq = LazySequence(iter([1, 2, 3]))
        assert lazy_seq.to_list() == [1, 2, 3]
        assert lazy_seq.to_list() == [], "A one-shot iterator cannot be replayed"

    def test_infinite_constructors_are_replayable(self):
        evens = LazySequence.counting(0, 2).take(4)
        assert evens.to_list() == [0, 2, 4, 6]
        assert evens.to_list() == [0, 2, 4, 6]

        assert LazySequence.cycling("ab").take(5).to_list() == ["a", "b", "a", "b", "a"]
        assert LazySequence.repeating("z").take(2).to_list() == ["z", "z"]
        assert LazySequence.repeating("z", 3).to_list() == ["z", "z", "z"]

    def test_cycling_does_not_drain_input(self, naturals):
        log = []
        seq = LazySequence.cycling(naturals(log))
        assert log == [], "Building the sequence must not pull the input"
        assert seq.take(3).to_list() == [0, 1, 2]
        assert log == [0, 1, 2]
        assert LazySequence.cycling(count()).take(4).to_list() == [0, 1, 2, 3]

    def test_combinatoric_constructors(self):
        pairs = LazySequence.product([1, 2], "ab")
        assert pairs.to_list() == [(1, "a"), (1, "b"), (2, "a"), (2, "b")]
        assert pairs.count() == 4, "Product sequences should be replayable"

        assert LazySequence.permutations([1, 2, 3], 2).count() == 6
        assert LazySequence.combinations(range(4), 2).first() == (0, 1)
        assert LazySequence.combinations_with_replacement([1, 2], 3).last() == (2, 2, 2)

    def test_combinatoric_constructors_validate_eagerly(self):
        with pytest.raises(ValueError):
            LazySequence.combinations([1, 2], -1)
        with pytest.raises(ValueError):
            LazySequence.permutations(count(), -2)
        with pytest.raises(TypeError):
            LazySequence.counting("a")

    def test_lazy_evaluation_with_side_effects(self):
        """Test that side effects only occur when operations are executed"""
        side_effects = []

        def side_effect_map(x):
            side_effects.append(f"processed {x}")
            return x * 2

        lazy_seq = LazySequence([1, 2, 3, 4, 5]).map(side_effect_map)
        assert len(side_effects) == 0, "Side effects should not occur during definition"

        result = lazy_seq.take(2).to_list()
        assert side_effects == ["processed 1", "processed 2"], f"Unexpected side effects: {side_effects}"
        assert result == [2, 4], f"Unexpected result: {result}"

    def test_lazy_evaluation_performance(self):
        """Test that lazy evaluation stays fast for small outputs of infinite inputs"""
        start_time = time.perf_counter()
        result = (
            LazySequence.counting()
            .map(lambda x: x * x)
            .filter(lambda x: x % 1000 == 0)
            .take(5)
            .to_list()
        )
        lazy_time = time.perf_counter() - start_time

        assert result == [0, 10000, 40000, 90000, 160000]
        assert lazy_time < 1.0, f"Lazy evaluation took too long: {lazy_time:.2f}s"


class TestReductions:
    """Test terminal operations that force evaluation"""

    def test_basic_reductions(self):
        data = LazySequence([1, 2, 3, 4, 5])

        assert data.sum() == 15
        assert data.count() == 5
        assert data.min() == 1
        assert data.max() == 5
        assert data.first() == 1
        assert data.last() == 5
        assert data.reduce(lambda a, b: a * b, 1) == 120
        assert data.reduce(lambda a, b: a + b) == 15

    def test_reduce_accepts_none_as_initial(self):
        def collect(acc, x):
            return [x] if acc is None else acc + [x]

        assert LazySequence([1, 2]).reduce(collect, None) == [1, 2]
        assert LazySequence([]).reduce(collect, None) is None
        with pytest.raises(TypeError):
            LazySequence([]).reduce(collect)

    def test_boolean_operations(self):
        data = LazySequence([1, 2, 3, 4, 5])

        assert data.any(lambda x: x > 3)
        assert not data.any(lambda x: x > 10)
        assert data.all(lambda x: x > 0)
        assert not data.all(lambda x: x > 3)
        assert data.find(lambda x: x > 3) == 4
        assert data.find(lambda x: x > 10) is None

    def test_short_circuit_on_infinite(self):
        assert LazySequence.counting().find(lambda x: x > 41) == 42
        assert LazySequence.counting().any(lambda x: x == 10)
        assert LazySequence.counting(1).first() == 1

    def test_empty_defaults(self):
        empty = LazySequence([])
        assert empty.min(default=0) == 0
        assert empty.max(default=-1) == -1
        assert empty.first("none") == "none"
        with pytest.raises(ValueError):
            empty.min()

    def test_to_collection(self):
        assert LazySequence("abc").to_collection(tuple) == ("a", "b", "c")
