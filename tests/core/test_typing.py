import pytest

from beaconsync.typing import Tristate


@pytest.mark.parametrize(
    'value, expected',
    (
        (None, Tristate.UNKNOWN),
        (True, Tristate.TRUE),
        (False, Tristate.FALSE),
    ),
)
def test_tristate_optional_conversion(value, expected):
    assert Tristate.from_optional(value) is expected
    assert expected.to_optional() is value


def test_tristate_is_known():
    assert Tristate.TRUE.is_known
    assert Tristate.FALSE.is_known
    assert not Tristate.UNKNOWN.is_known


@pytest.mark.parametrize('state', tuple(Tristate))
def test_tristate_has_no_truth_value(state):
    with pytest.raises(TypeError):
        bool(state)


def test_tristate_str():
    assert str(Tristate.UNKNOWN) == 'unknown'
    assert str(Tristate.TRUE) == 'true'
