# Copyright (c) 2025 Soumyadip Sarkar.
# All rights reserved.
#
# This source code is licensed under the Apache-style license found in the
# LICENSE file in the root directory of this source tree.

from collections import namedtuple

import numpy as np
import pytest

import difftensor as dt

Pair = namedtuple("Pair", ["first", "second"])


class Point(dt.Differentiable):
    def __init__(self, x, y, label="p"):
        self.x = x
        self.y = y
        self.label = label

    def wrap(self, wrapper):
        return Point(wrapper.wrap(self.x), wrapper.wrap(self.y), self.label)


class Swapped(Point):
    def wrap(self, wrapper):
        x = wrapper.wrap(self.x)
        y = wrapper.wrap(self.y)
        return Swapped(y, x)


class Dropped(Point):
    def wrap(self, wrapper):
        return Dropped(wrapper.wrap(self.x), self.y)


class WrongType(Point):
    def wrap(self, wrapper):
        return Point(wrapper.wrap(self.x), wrapper.wrap(self.y))


class Scaled(dt.Differentiable):
    def __init__(self, a, b):
        self.a = a
        self.b = b

    def wrap(self, wrapper):
        return Scaled(wrapper.wrap(self.a), self.b)


class SlottedDropped(dt.Differentiable):
    __slots__ = ("x", "y")

    def __init__(self, x, y):
        self.x = x
        self.y = y

    def wrap(self, wrapper):
        return SlottedDropped(wrapper.wrap(self.x), self.y)


class ListDropped(dt.Differentiable):
    def __init__(self, weights, bias):
        self.weights = weights
        self.bias = bias

    def wrap(self, wrapper):
        return ListDropped(list(self.weights), wrapper.wrap(self.bias))


class Layer(dt.Differentiable):
    def __init__(self, weight, width):
        self.weight = weight
        self.width = width

    def wrap(self, wrapper):
        return Layer(wrapper.wrap(self.weight), self.width)


class Nested(dt.Differentiable):
    def __init__(self, inner, scale):
        self.inner = inner
        self.scale = scale

    def wrap(self, wrapper):
        return Nested(wrapper.wrap(self.inner), wrapper.wrap(self.scale))


def test_leaves_in_wrap_order():
    a, b, c, d = (dt.tensor(float(i)) for i in range(4))
    entity = {"p": Point(a, b), "rest": [c, (d,)]}
    assert [leaf.item() for leaf in dt.leaves(entity)] == [0.0, 1.0, 2.0, 3.0]


def test_identity_wrap_is_idempotent():
    a, b, c = dt.tensor(1.0), dt.tensor([2.0, 3.0]), dt.tensor(4.0)
    entity = {"point": Point(a, b), "pair": Pair(c, None), "items": [a]}
    once = dt.wrap(entity, lambda t: t)
    twice = dt.wrap(once, lambda t: t)
    for result in (once, twice):
        assert isinstance(result["point"], Point)
        assert isinstance(result["pair"], Pair)
        assert result["point"].label == "p"
        assert result["pair"].second is None
        assert len(dt.leaves(result)) == 4
        assert all(x is y for x, y in zip(dt.leaves(result), [a, b, c, a]))


def test_wrap_applies_function_to_leaves():
    p = Point(dt.tensor(1.0), dt.tensor([2.0, 3.0]))
    doubled = dt.wrap(p, lambda t: t * 2)
    assert doubled.x.item() == 2.0
    np.testing.assert_allclose(doubled.y.numpy(), [4.0, 6.0])
    assert p.x.item() == 1.0


def test_numbers_become_scalar_tensors():
    wrapped = dt.wrap((1.5, 2), lambda t: t)
    assert all(isinstance(t, dt.Tensor) for t in wrapped)
    assert wrapped[0].item() == 1.5


def test_unsupported_values_raise_type_error():
    with pytest.raises(TypeError):
        dt.wrap({"name": "text"}, lambda t: t)


def test_custom_wrapper_subclass():
    class Counter(dt.Wrapper):
        def __init__(self):
            super().__init__()
            self.count = 0

        def wrap_tensor(self, value):
            self.count += 1
            return value

    counter = Counter()
    counter.wrap(Nested(Point(dt.ones(2), dt.ones(3)), dt.tensor(2.0)))
    assert counter.count == 3


@pytest.mark.parametrize("cls", [Swapped, Dropped, WrongType, SlottedDropped])
def test_structural_mismatch_detected(cls):
    broken = cls(dt.tensor(1.0), dt.tensor(2.0))
    with dt.debug_checks(True):
        with pytest.raises(dt.StructuralWrapMismatch) as info:
            dt.wrap(broken, lambda t: t * 1)
    assert cls.__name__ in str(info.value)


def test_unwrapped_number_field_is_detected():
    with dt.debug_checks(True):
        with pytest.raises(dt.StructuralWrapMismatch) as info:
            dt.reverse_derivative(Scaled(3.0, 2.0), lambda q: q.a * q.b)
    assert "'b'" in str(info.value)


def test_unwrapped_tensors_inside_a_list_field_are_detected():
    broken = ListDropped([dt.tensor(1.0), dt.tensor(2.0)], dt.tensor(3.0))
    with dt.debug_checks(True):
        with pytest.raises(dt.StructuralWrapMismatch):
            dt.wrap(broken, lambda t: t)


def test_integer_configuration_fields_are_allowed():
    layer = Layer(dt.tensor([1.0, 2.0]), width=2)
    with dt.debug_checks(True):
        grad = dt.reverse_derivative(layer, lambda m: (m.weight * m.width).sum())
    assert grad.width == 2
    np.testing.assert_allclose(grad.weight.numpy(), [2.0, 2.0])


def test_structural_mismatch_inside_nested_aggregate():
    broken = Nested(Swapped(dt.tensor(1.0), dt.tensor(2.0)), dt.tensor(3.0))
    with dt.debug_checks(True):
        with pytest.raises(dt.StructuralWrapMismatch):
            dt.reverse_derivative(broken, lambda n: n.inner.x * n.scale)


def test_checks_can_be_disabled():
    broken = Swapped(dt.tensor(1.0), dt.tensor(2.0))
    with dt.debug_checks(False):
        swapped = dt.wrap(broken, lambda t: t * 10)
    assert swapped.x.item() == 20.0
    assert swapped.y.item() == 10.0


def test_differentiable_gradient_has_same_structure():
    model = Nested(Point(dt.tensor(2.0), dt.tensor(3.0)), dt.tensor(4.0))

    def f(m):
        return m.inner.x * m.inner.y * m.scale

    with dt.debug_checks(True):
        grad = dt.reverse_derivative(model, f)
    assert isinstance(grad, Nested)
    assert isinstance(grad.inner, Point)
    assert grad.inner.x.item() == 12.0
    assert grad.inner.y.item() == 8.0
    assert grad.scale.item() == 6.0


def test_differentiable_is_abstract():
    with pytest.raises(TypeError):
        dt.Differentiable()
