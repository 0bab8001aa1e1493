"""
Shared fixtures: scripted providers that never touch the network.
"""

import os
import sys
import threading
import time

import pytest

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from cep_lookup.interfaces import CEPResult, FailureKind, Provider


class FakeProvider(Provider):
    """
    Provider that sleeps for `delay` seconds and then succeeds, fails or raises.

    The sleep ignores the scope on purpose, like a blocking HTTP call.
    """

    def __init__(self, tag, delay=0.0, behavior='success', kind=FailureKind.TRANSPORT):
        self._tag = tag
        self.delay = delay
        self.behavior = behavior
        self.kind = kind
        self.calls = 0
        self.started = threading.Event()
        self.finished = threading.Event()
        self.thread_names = []

    @property
    def name(self):
        return f"Fake {self._tag}"

    @property
    def source_tag(self):
        return self._tag

    def result(self):
        return CEPResult(
            provider_name=self.name,
            source_tag=self._tag,
            cep='01001-000',
            street='Praça da Sé',
            neighborhood='Sé',
            city='São Paulo',
            state='SP',
        )

    def fetch(self, scope, key):
        self.calls += 1
        self.thread_names.append(threading.current_thread().name)
        self.started.set()
        try:
            time.sleep(self.delay)
            if self.behavior == 'success':
                return self.result()
            if self.behavior == 'raise':
                raise RuntimeError("boom")
            return self.failure(f"{self._tag} failed", self.kind)
        finally:
            self.finished.set()


@pytest.fixture
def make_provider():
    """Factory for FakeProvider instances."""
    return FakeProvider
