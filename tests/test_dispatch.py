import copy

import pytest

from lazyset import AccessError, LazySequence, RangeError, make_sequence


class TestIndexedAccess:
    """Test numeric index resolution"""

    def test_collection_fast_path(self):
        seq = make_sequence([10, 20, 30])
        assert seq[0] == 10
        assert seq[2] == 30
        assert seq[3] is None

    def test_producer_index(self, naturals):
        assert make_sequence(naturals)[99] == 100

    def test_negative_index_raises(self):
        with pytest.raises(RangeError):
            make_sequence([1, 2])[-1]

    def test_get_negative_index_raises(self):
        with pytest.raises(RangeError) as exc_info:
            make_sequence([1, 2]).get(-1)
        assert isinstance(exc_info.value, IndexError)
        assert exc_info.value.index == -1

    def test_get_default(self):
        assert make_sequence([1]).get(5) is None
        assert make_sequence([1]).get(5, "missing") == "missing"
        assert make_sequence([1]).get(0, "missing") == 1

    def test_resolution_errors_wrapped(self):
        def broken():
            raise ValueError("producer failed")
            yield

        with pytest.raises(AccessError) as exc_info:
            make_sequence(broken)[0]
        error = exc_info.value
        assert error.key == 0
        assert error.target_type == "LazySequence"
        assert isinstance(error.__cause__, ValueError)
        assert error.code == "ACCESS_ERROR"

    def test_get_propagates_unwrapped(self):
        def broken():
            raise ValueError("producer failed")
            yield

        with pytest.raises(ValueError):
            make_sequence(broken).get(0)

    def test_string_key_resolves_attribute(self):
        seq = make_sequence([4, 5])
        assert seq["first"]() == 4
        assert seq["nothing_here"] is None


class TestAttributeResolution:
    """Test fallback of unknown names"""

    def test_unknown_public_name_is_none(self):
        assert make_sequence([1]).frobnicate is None

    def test_private_names_raise(self):
        seq = make_sequence([1])
        with pytest.raises(AttributeError):
            seq._nope
        assert not hasattr(seq, "__array__")

    def test_copy_works(self):
        seq = make_sequence([1, 2, 3])
        assert copy.copy(seq).to_array() == [1, 2, 3]

    def test_registered_name_binds(self):
        assert callable(make_sequence([1]).sq)

    def test_callback_attribute_error_surfaces_through_dispatch(self):
        class Plain:
            pass

        seq = make_sequence([Plain(), Plain()]).map(lambda x: x.missing)
        with pytest.raises(AttributeError, match="missing"):
            seq.sq().to_array()

    def test_callback_attribute_error_surfaces_through_shape(self):
        class Plain:
            pass

        seq = make_sequence([Plain()]).map(lambda x: x.missing)
        with pytest.raises(AttributeError, match="missing"):
            seq.is_singleton
        with pytest.raises(AttributeError, match="missing"):
            seq.shape

    def test_class_members_do_not_fall_back(self):
        assert make_sequence([1, 2]).is_singleton is False
        assert make_sequence([1, 2]).frobnicate is None


class TestOperationDispatch:
    """Test arity-driven dispatch of registered operations"""

    def test_unary_singleton_returns_raw(self):
        assert make_sequence(3).sq() == 9

    def test_unary_multi_maps(self):
        result = make_sequence([1, 2, 3]).sq()
        assert isinstance(result, LazySequence)
        assert result.to_array() == [1, 4, 9]

    def test_binary_singleton_singleton(self):
        assert make_sequence(5).sub(3) == 2

    def test_binary_broadcast_right(self):
        assert make_sequence([10, 20, 30]).sub(1).to_array() == [9, 19, 29]

    def test_binary_broadcast_left(self):
        assert make_sequence(100).sub([1, 2, 3]).to_array() == [99, 98, 97]

    def test_binary_zip_to_shorter(self):
        assert make_sequence([10, 20, 30]).sub([1, 2]).to_array() == [9, 18]

    def test_binary_zip_with_infinite(self, naturals):
        assert make_sequence([10, 20, 30]).mul(make_sequence(naturals)).to_array() == [10, 40, 90]

    def test_nary_fixed_arguments(self):
        assert make_sequence([-5, 5, 15]).clamp(0, 10).to_array() == [0, 5, 10]
        assert make_sequence(15).clamp(0, 10) == 10

    def test_variadic_reduces(self):
        assert make_sequence([1, 2, 3]).sum() == 6
        assert make_sequence([]).sum() == 0
        assert make_sequence([4, 9, 2]).max() == 9

    def test_variadic_large_receiver_folds(self):
        assert make_sequence(range(5000)).sum() == sum(range(5000))
        assert make_sequence(range(5000)).max() == 4999

    def test_variadic_with_arguments(self):
        assert make_sequence(5).sum(1, 2) == 8
        assert make_sequence([1, 2]).sum(10).to_array() == [11, 12]

    def test_native_builtin_is_variadic(self, registry):
        registry.register_operation("biggest", max)
        assert make_sequence([3, 9, 2], registry=registry).biggest() == 9
        assert make_sequence(range(1500), registry=registry).biggest() == 1499


class TestSerialization:
    def test_value(self):
        assert make_sequence(4).value() == 4
        assert make_sequence([1, 2]).value() == [1, 2]

    def test_to_json_and_string(self, naturals):
        assert make_sequence([1, 2, 3]).to_json() == [1, 2, 3]
        assert make_sequence([1, 2, 3]).to_string() == "1,2,3"
        assert make_sequence(naturals).to_string(maxlen=3) == "1,2,3"

    def test_length(self, naturals):
        assert make_sequence([1, 2]).length == 2
        assert make_sequence(naturals).length is None
