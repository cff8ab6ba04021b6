import logging

from lazyset import (
    EMIT_AND_STOP,
    STOP,
    LazySequence,
    PipeSettings,
    compose,
    iif,
    make_sequence,
    pipe,
    route,
    unless,
    when,
)
from lazyset import sq, sum as total, take, to_array


class TestPipe:
    """Test sequential composition"""

    def test_free_function_pipeline(self, naturals):
        assert pipe(take(5), sq, total)(naturals) == 55

    def test_initial_value(self):
        assert pipe(sq)(4) == 16
        assert pipe(lambda s: make_sequence(s).map(str), to_array)([1, 2]) == ["1", "2"]

    def test_source_step(self):
        assert pipe(lambda: [1, 2, 3], total)() == 6

    def test_explicit_none_is_an_initial_value(self):
        step = lambda x=7: x
        assert pipe(step)() == 7
        assert pipe(step)(None) is None

    def test_generator_function_source(self, naturals):
        assert pipe(naturals, take(3), to_array)() == [1, 2, 3]

    def test_compose_takes_iterable(self):
        assert compose([sq, total])([1, 2, 3]) == 14

    def test_sequence_pipe_method(self):
        assert make_sequence([1, 2, 3]).pipe(sq, total) == 14

    def test_empty_pipe_returns_input(self):
        assert pipe()(5) == 5


class TestConditionals:
    """Test elementwise conditional steps"""

    def test_iif_without_else_passes_through(self):
        step = iif(lambda x: x % 2 == 0, lambda x: x * 10)
        result = pipe(step)([1, 2, 3, 4])
        assert isinstance(result, LazySequence)
        assert result.to_array() == [1, 20, 3, 40]

    def test_iif_with_else(self):
        step = iif(lambda x: x > 2, lambda x: "big", lambda x: "small")
        assert pipe(step)([1, 3]).to_array() == ["small", "big"]

    def test_stop_from_then(self, naturals):
        step = iif(lambda x: x > 3, lambda x: STOP)
        assert pipe(step)(naturals).to_array() == [1, 2, 3]

    def test_emit_and_stop(self, naturals):
        step = iif(lambda x: x == 3, lambda x: EMIT_AND_STOP)
        assert pipe(step)(naturals).to_array() == [1, 2, 3]

    def test_else_stop(self, naturals):
        step = iif(lambda x: x < 3, lambda x: x * 100, STOP)
        assert pipe(step)(naturals).to_array() == [100, 200]

    def test_conditional_output_is_lazy(self, naturals):
        seen = []
        step = when(lambda x: True, lambda x: seen.append(x) or x)
        result = pipe(step)(naturals)
        assert seen == []
        assert result.take(2).to_array() == [1, 2]
        assert seen == [1, 2]

    def test_when_and_unless(self):
        assert pipe(when(lambda x: x > 2, sq))([1, 2, 3, 4]).to_array() == [1, 2, 9, 16]
        assert pipe(unless(lambda x: x > 2, lambda x: -x))([1, 2, 3, 4]).to_array() == [-1, -2, 3, 4]

    def test_conditional_as_scalar_callable(self):
        step = iif(lambda x: x > 0, lambda x: "pos", lambda x: "neg")
        assert step(-1) == "neg"
        assert step(1) == "pos"

    def test_conditional_between_steps(self):
        double_odds = when(lambda x: x % 2, lambda x: x * 2)
        assert pipe(take(4), double_odds, total)(range(10)) == 0 + 2 + 2 + 6

    def test_route(self):
        step = route([
            (0, lambda x: "zero"),
            (lambda x: x < 0, lambda x: "negative"),
        ])
        assert pipe(step)([0, -1, 5]).to_array() == ["zero", "negative", 5]

    def test_route_mapping(self):
        step = route({"a": str.upper, "b": lambda x: x * 2})
        assert pipe(step)(["a", "b", "c"]).to_array() == ["A", "bb", "c"]


class TestReductionFallback:
    """Test the degenerate trailing-reduction check"""

    @staticmethod
    def span(*args):
        return args[-1] - args[0] if args else 0

    def test_degenerate_result_warns_when_enabled(self, registry, caplog):
        registry.register_operation("span", self.span)
        seq = make_sequence([5, 5, 5], registry=registry)
        settings = PipeSettings(reduction_fallback=True)
        with caplog.at_level(logging.WARNING, logger="lazyset.compose"):
            assert pipe(registry.span, settings=settings)(seq) == 5
        assert "degenerate" in caplog.text

    def test_disabled_check_leaves_source_alone(self, registry, caplog):
        calls = {"count": 0}

        def zeros():
            calls["count"] += 1
            yield from [0, 0, 0]

        seq = make_sequence(zeros, registry=registry)
        with caplog.at_level(logging.WARNING, logger="lazyset.compose"):
            assert pipe(registry.sum)(seq) == 0
        assert calls["count"] == 1
        assert not [r for r in caplog.records if r.levelno >= logging.WARNING]

    def test_fallback_recomputes_with_reduce(self, registry):
        registry.register_operation("span", self.span)
        seq = make_sequence([5, 5, 5], registry=registry)
        settings = PipeSettings(reduction_fallback=True)
        assert pipe(registry.span, settings=settings)(seq) == 5

    def test_non_degenerate_result_untouched(self, registry):
        settings = PipeSettings(reduction_fallback=True)
        seq = make_sequence([1, 2, 3], registry=registry)
        assert pipe(registry.sum, settings=settings)(seq) == 6
