import pytest

from valfleet.deploy.planner import plan_action
from valfleet.dispatch.actions import Action
from valfleet.errors import ConfigurationError, PoolExhaustedError, UnknownActionError
from valfleet.observers.dispatcher import EventBus
from valfleet.observers.events import ActionPlanned, new_ctx

class Capture:
    def __init__(self): self.events = []
    def notify(self, ev): self.events.append(ev)

def test_plan_elects_first_host_and_emits_event(fleet_cfg):
    cap = Capture()
    plan = plan_action("provision", ["A", "B", "C"], fleet_cfg, bus=EventBus([cap]), run_ctx=new_ctx("r1", "provision"))
    assert plan.action is Action.PROVISION
    assert plan.bootstrap.address == "A"
    assert plan.addresses == ["A", "B", "C"]
    assert [i.source.name for i in plan.identities] == ["node-1.pem", "node-2.pem", "node-3.pem"]
    pe = next(e for e in cap.events if isinstance(e, ActionPlanned))
    assert pe.hosts == ["A", "B", "C"]
    assert pe.bootstrap == "A"

def test_plan_is_stable_across_invocations(fleet_cfg):
    first = plan_action("provision", ["A", "B", "C"], fleet_cfg)
    again = plan_action("start", ["A", "B", "C"], fleet_cfg)
    assert first.bootstrap == again.bootstrap
    assert [i.source for i in first.identities] == [i.source for i in again.identities]

def test_plan_rejects_more_hosts_than_pool(fleet_cfg):
    cap = Capture()
    with pytest.raises(PoolExhaustedError) as ei:
        plan_action("start", ["A", "B", "C", "D", "E", "F"], fleet_cfg, bus=EventBus([cap]), run_ctx=new_ctx("r1", "start"))
    assert ei.value.position == 6
    assert ei.value.pool_size == 5
    assert cap.events == []

def test_plan_unknown_action(fleet_cfg):
    with pytest.raises(UnknownActionError, match="invalid action deploy"):
        plan_action("deploy", ["A"], fleet_cfg)

def test_plan_needs_hosts(fleet_cfg):
    with pytest.raises(ConfigurationError):
        plan_action("status", [], fleet_cfg)
