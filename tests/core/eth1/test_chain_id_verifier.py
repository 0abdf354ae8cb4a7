from eth_utils import to_hex
from hypothesis import (
    given,
    settings,
    strategies as st,
)
import pytest

from beaconsync.eth1 import ChainIdentityVerifier, JSONRPCClient
from beaconsync.exceptions import (
    ChainMismatch,
    ProtocolViolation,
    Unreachable,
)
from beaconsync.tools.eth1 import FakeETH1Session, make_response


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


def _make_verifier(client, expected_chain_id, **kwargs):
    return ChainIdentityVerifier(client, expected_chain_id, **kwargs)


def test_verify_matching_chain(client, session):
    session.returns('eth_chainId', '0x1')
    verifier = _make_verifier(client, 1)

    assert verifier.verify() == 1
    assert not verifier.needs_verification

    request, = session.calls('eth_chainId')
    assert request['payload'] == {
        'jsonrpc': '2.0',
        'method': 'eth_chainId',
        'params': [],
        'id': 1901,
    }


def test_verify_chain_mismatch(client, session):
    session.returns('eth_chainId', '0x1')
    verifier = _make_verifier(client, 5)

    with pytest.raises(ChainMismatch) as excinfo:
        verifier.verify()

    assert excinfo.value.expected == 5
    assert excinfo.value.actual == 1
    assert excinfo.value.context['endpoint'] == client.endpoint
    assert not excinfo.value.retryable
    assert verifier.needs_verification


def test_result_without_prefix(client, session):
    session.returns('eth_chainId', '5')
    assert _make_verifier(client, 5).verify() == 5


@pytest.mark.parametrize(
    'result',
    ('0x', 'chain', '', None, 1, {'chainId': '0x1'}, '-0x1', '0x10000000000000000'),
)
def test_unparsable_result_is_protocol_violation(client, session, result):
    session.returns('eth_chainId', result)

    with pytest.raises(ProtocolViolation):
        _make_verifier(client, 1).verify()


def test_server_error_is_unreachable_not_mismatch(client, session):
    session.on('eth_chainId', lambda params: make_response(502, '{"result": "0x5"}'))

    with pytest.raises(Unreachable) as excinfo:
        _make_verifier(client, 1).verify()
    assert excinfo.value.context['status_code'] == 502


def test_invalid_verifier_arguments(client):
    with pytest.raises(ValueError):
        _make_verifier(client, -1)
    with pytest.raises(ValueError):
        _make_verifier(client, 1, reverify_interval=-1)


def test_ensure_verified_only_once(client, session, clock):
    session.returns('eth_chainId', '0x1')
    verifier = _make_verifier(client, 1, reverify_interval=60, clock=clock)

    verifier.ensure_verified()
    verifier.ensure_verified()
    clock.now += 59
    verifier.ensure_verified()

    assert len(session.calls('eth_chainId')) == 1


def test_ensure_verified_after_interval(client, session, clock):
    session.returns('eth_chainId', '0x1')
    verifier = _make_verifier(client, 1, reverify_interval=60, clock=clock)

    verifier.ensure_verified()
    clock.now += 60
    verifier.ensure_verified()

    assert len(session.calls('eth_chainId')) == 2


def test_ensure_verified_zero_interval_disables_periodic_checks(client, session, clock):
    session.returns('eth_chainId', '0x1')
    verifier = _make_verifier(client, 1, reverify_interval=0, clock=clock)

    verifier.ensure_verified()
    clock.now += 10 ** 6
    verifier.ensure_verified()

    assert len(session.calls('eth_chainId')) == 1


def test_ensure_verified_on_endpoint_change(client, session, clock):
    endpoints = {'http://localhost:8545/': '0x1', 'http://goerli:8545/': '0x5'}
    session.on('eth_chainId', lambda params: endpoints[session.requests[-1]['url']])
    verifier = _make_verifier(client, 1, reverify_interval=0, clock=clock)
    verifier.ensure_verified()

    client.endpoint = 'http://goerli:8545'
    with pytest.raises(ChainMismatch):
        verifier.ensure_verified()

    # the failed verification is not remembered as a success
    with pytest.raises(ChainMismatch):
        verifier.ensure_verified()
    assert len(session.calls('eth_chainId')) == 3

    client.endpoint = 'http://localhost:8545'
    verifier.ensure_verified()
    assert len(session.calls('eth_chainId')) == 4


def test_failed_verification_is_retried(client, session):
    responses = [make_response(503, 'busy'), '0x1']
    session.on('eth_chainId', lambda params: responses.pop(0))
    verifier = _make_verifier(client, 1)

    with pytest.raises(Unreachable):
        verifier.ensure_verified()
    verifier.ensure_verified()
    assert not verifier.needs_verification


@given(
    served=st.integers(min_value=0, max_value=2 ** 64 - 1),
    other=st.integers(min_value=0, max_value=2 ** 64 - 1),
    same_chain=st.booleans(),
)
@settings(max_examples=100)
def test_verify_succeeds_iff_chain_ids_match(served, other, same_chain):
    expected = served if same_chain else other
    session = FakeETH1Session()
    session.returns('eth_chainId', to_hex(primitive=served))
    verifier = ChainIdentityVerifier(JSONRPCClient('http://node', session=session), expected)

    if served == expected:
        assert verifier.verify() == expected
    else:
        with pytest.raises(ChainMismatch):
            verifier.verify()


@pytest.mark.parametrize('result, expected', (('0x1', 1), ('5', 5), ('0xAa36A7', 11155111)))
def test_fetch_chain_id_does_not_verify(client, session, result, expected):
    session.returns('eth_chainId', result)
    verifier = _make_verifier(client, 1)

    assert verifier.fetch_chain_id() == expected
    assert verifier.needs_verification
    request, = session.calls('eth_chainId')
    assert request['payload'] == {
        'jsonrpc': '2.0',
        'method': 'eth_chainId',
        'params': [],
        'id': 1901,
    }


def test_chain_id_above_uint64_is_not_a_mismatch(client, session):
    session.returns('eth_chainId', to_hex(primitive=2 ** 64 + 1))

    with pytest.raises(ProtocolViolation) as excinfo:
        _make_verifier(client, 1).verify()
    assert not isinstance(excinfo.value, ChainMismatch)
