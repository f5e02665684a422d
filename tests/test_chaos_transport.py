import pytest

from conftest import FakeTransport, make_report
from issuerelay_client.errors import TransportError
from issuerelay_client.transport import ChaosTransport


class ScriptedRandom:
  def __init__(self, values):
    self._values = list(values)

  def random(self):
    return self._values.pop(0)


def test_chaos_failure_never_reaches_inner_transport():
  inner = FakeTransport()
  chaos = ChaosTransport(inner, rng=ScriptedRandom([0.1]))

  with pytest.raises(TransportError, match="Chaos Mode"):
    chaos.deliver(make_report())

  assert inner.calls == []


def test_chaos_delay_then_delivers():
  inner = FakeTransport()
  sleeps = []
  chaos = ChaosTransport(inner, rng=ScriptedRandom([0.9, 0.2]), sleep=sleeps.append)

  receipt = chaos.deliver(make_report())

  assert receipt.report_id == "rep-1"
  assert sleeps == [0.8]


def test_chaos_passes_through_when_dice_are_kind():
  inner = FakeTransport()
  sleeps = []
  chaos = ChaosTransport(inner, rng=ScriptedRandom([0.5, 0.5]), sleep=sleeps.append)

  chaos.deliver(make_report())

  assert len(inner.calls) == 1
  assert sleeps == []
  assert chaos.inner is inner
