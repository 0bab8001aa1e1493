#!/usr/bin/env python3
"""
Outcome channel tests.

Run: pytest tests/test_channels.py -v
"""

import pytest

from cep_lookup.channels import OutcomeChannel, make_channels
from cep_lookup.deadline import create_scope


@pytest.fixture
def scope():
    s = create_scope(5.0)
    yield s
    s.cancel()


class TestOutcomeChannel:

    def test_delivers_in_order(self, scope):
        channel = OutcomeChannel(scope, capacity=2, name='test')

        assert channel.offer('a')
        assert channel.offer('b')
        assert len(channel) == 2
        assert channel.poll() == 'a'
        assert channel.poll() == 'b'
        assert channel.poll() is None

    def test_full_channel_drops_without_blocking(self, scope):
        channel = OutcomeChannel(scope, capacity=1, name='test')

        assert channel.offer('a')
        assert channel.offer('b') is False
        assert len(channel) == 1

    def test_no_delivery_after_scope_fired(self, scope):
        channel = OutcomeChannel(scope, capacity=2, name='test')
        scope.cancel('winner')

        assert channel.offer('late') is False
        assert channel.poll() is None

    def test_pair_shares_arrival_order(self, scope):
        successes, failures = make_channels(scope, 2)

        failures.offer('f1')
        successes.offer('s1')

        assert failures.peek_sequence() < successes.peek_sequence()

    def test_rejects_zero_capacity(self, scope):
        with pytest.raises(ValueError):
            OutcomeChannel(scope, capacity=0, name='test')
