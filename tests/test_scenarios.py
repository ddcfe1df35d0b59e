"""
Scenario Tests

Loads the JSON scenarios in tests/scenarios, replays them through the
scenario runner and checks the event log and stop reason.
"""

import json
import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

import simulator
from analysis.events import EventType
from models.cycle import GraphMode
from simulator import STOP_COMPLETED, STOP_DEADLOCK, STOP_LOAD_FAILED, STOP_RESOLVED, run_scenario
from utils.scenario_loader import ScenarioLoadError, build_scenario, get_scenario_description, load_scenario


# Test scenarios directory
SCENARIOS_DIR = project_root / "tests" / "scenarios"


def _count(event_log, event_type):
    return len(event_log.get_events_by_type(event_type))


def _minimal(**overrides):
    data = {
        "processes": 1,
        "resources": {"total": [1], "available": [1]},
        "allocation": [[0]],
    }
    data.update(overrides)
    return data


def test_load_circular_wait():
    """Test the loader builds the ledger and keeps operations in file order."""
    print("\n" + "="*60)
    print("TEST 1: Scenario Loader")
    print("="*60)

    engine, operations = load_scenario(str(SCENARIOS_DIR / "circular_wait.json"))

    print(f"  Processes: {engine.num_processes}, Resources: {engine.num_resources}")
    print(f"  Operations: {[op['op'] for op in operations]}")
    assert engine.num_processes == 2
    assert engine.num_resources == 2
    assert list(engine.ledger.available) == [0, 0]
    assert [op['op'] for op in operations] == ["detect", "resolve", "detect", "request"]
    assert engine.detect_deadlock(GraphMode.ALLOCATION_GRAPH) is not None
    print("\n✅ Scenario Loader Tests PASSED")


def test_available_defaults_to_unallocated_instances():
    engine, _ = load_scenario(str(SCENARIOS_DIR / "unresolved_deadlock.json"))

    assert list(engine.ledger.available) == [0, 0, 0]


def test_loader_rejects_invalid_scenarios(tmp_path):
    with pytest.raises(ScenarioLoadError):
        load_scenario(str(tmp_path / "missing.json"))

    broken = tmp_path / "broken.json"
    broken.write_text("{not json", encoding='utf-8')
    with pytest.raises(ScenarioLoadError):
        load_scenario(str(broken))

    invalid = [
        {"resources": {"total": [1]}, "allocation": [[0]]},
        _minimal(processes="two"),
        _minimal(resources=[1]),
        _minimal(allocation=[[2]]),
        _minimal(resources={"total": [1], "available": [0]}),
        _minimal(operations=[{"op": "explode"}]),
        _minimal(operations=[{"op": "request", "process": 0, "resource": 0}]),
        _minimal(operations=[{"op": "detect", "mode": "sideways"}]),
        _minimal(wait_for={"edges": [[0, 5]]}),
        _minimal(wait_for={"edges": [[0]]}),
        _minimal(processes=2, resources={"total": [1, 1], "available": [1, 1]},
                 allocation=[[0, 0], [0]]),
        _minimal(processes=2, resources={"total": [1, 1]}, allocation=[[0, 0], [0]]),
        _minimal(resources={"total": ["a"], "available": [1]}),
        _minimal(resources={"total": ["a"]}),
        _minimal(resources={"total": [1.5], "available": [1.5]}),
        _minimal(wait_for=[[0, 0]]),
        _minimal(wait_for={"edges": {"0": 1}}),
        _minimal(operations={"op": "detect"}),
        _minimal(victim_policy="random"),
    ]
    for data in invalid:
        with pytest.raises(ScenarioLoadError):
            build_scenario(data)


def test_loader_applies_order_and_wait_for_settings():
    engine, _ = build_scenario(_minimal(
        processes=3,
        resources={"total": [1, 1], "available": [1, 1]},
        allocation=[[0, 0], [0, 0], [0, 0]],
        order=[1, 0],
        ordering_enabled=False,
        victim_policy="fewest_held",
        wait_for={"prevention": True, "edges": [[0, 1], [2, 1]]},
    ))

    assert engine.order.order == [1, 0]
    assert not engine.ordering_enabled
    assert engine.victim_policy == "fewest_held"
    assert engine.wait_for_graph.prevention_enabled
    assert engine.wait_for_graph.edges() == [(0, 1)]
    assert _count(engine.event_log, EventType.EDGE_REJECTED) == 1


def test_scenario_description(tmp_path):
    assert get_scenario_description(str(SCENARIOS_DIR / "ordered_requests.json")).startswith("Resource ordering")
    assert get_scenario_description(str(tmp_path / "missing.json")) == ''


def test_run_circular_wait():
    """Detect, resolve, and confirm the terminated process is locked out."""
    print("\n" + "="*60)
    print("TEST 2: Circular Wait Scenario")
    print("="*60)

    event_log, stop_reason = run_scenario(str(SCENARIOS_DIR / "circular_wait.json"), echo=False)

    print(f"  Stop reason: {stop_reason}")
    print(event_log.display())
    assert stop_reason == STOP_RESOLVED
    assert _count(event_log, EventType.DEADLOCK) == 1
    assert _count(event_log, EventType.RECOVERY) == 2
    denials = event_log.get_events_by_type(EventType.DENIAL)
    assert len(denials) == 1
    assert denials[0].reason == "Process terminated"


def test_run_unresolved_deadlock():
    event_log, stop_reason = run_scenario(str(SCENARIOS_DIR / "unresolved_deadlock.json"), echo=False)

    assert stop_reason == STOP_DEADLOCK
    assert _count(event_log, EventType.RECOVERY) == 0

    event_log, stop_reason = run_scenario(
        str(SCENARIOS_DIR / "unresolved_deadlock.json"), auto_resolve=True, echo=False
    )

    assert stop_reason == STOP_RESOLVED
    assert _count(event_log, EventType.DEADLOCK) == 1
    assert _count(event_log, EventType.RECOVERY) == 3


def test_run_ordered_requests():
    """Ordering turns the closing request into a violation, so no deadlock forms."""
    event_log, stop_reason = run_scenario(str(SCENARIOS_DIR / "ordered_requests.json"), echo=False)

    assert stop_reason == STOP_COMPLETED
    assert _count(event_log, EventType.DEADLOCK) == 0
    assert _count(event_log, EventType.ORDER_VIOLATION) == 1
    assert _count(event_log, EventType.ALLOCATION) == 3
    assert _count(event_log, EventType.RELEASE) == 1


def test_run_wait_for_cycle():
    event_log, stop_reason = run_scenario(
        str(SCENARIOS_DIR / "wait_for_cycle.json"), mode='wait_for', echo=False
    )

    assert stop_reason == STOP_RESOLVED
    assert _count(event_log, EventType.EDGE_ADDED) == 3
    assert _count(event_log, EventType.EDGE_REJECTED) == 1
    assert _count(event_log, EventType.DEADLOCK) == 1
    assert _count(event_log, EventType.RECOVERY) == 3


def test_run_skips_bad_operations():
    event_log, stop_reason = run_scenario(str(SCENARIOS_DIR / "bad_operations.json"), echo=False)

    assert stop_reason == STOP_COMPLETED
    assert _count(event_log, EventType.ORDER_RESET) == 1
    assert _count(event_log, EventType.ALLOCATION) == 1
    assert _count(event_log, EventType.RELEASE) == 0


def test_run_missing_scenario(tmp_path):
    event_log, stop_reason = run_scenario(str(tmp_path / "nope.json"), echo=False)

    assert stop_reason == STOP_LOAD_FAILED
    assert event_log.events == []


def test_run_rejects_unknown_victim_policy(tmp_path):
    """A misspelt policy fails at load time, even with auto-resolve on."""
    with open(SCENARIOS_DIR / "circular_wait.json", 'r', encoding='utf-8') as f:
        data = json.load(f)
    data['victim_policy'] = "random"
    scenario = tmp_path / "bad_policy.json"
    scenario.write_text(json.dumps(data), encoding='utf-8')

    event_log, stop_reason = run_scenario(str(scenario), auto_resolve=True, echo=False)

    assert stop_reason == STOP_LOAD_FAILED
    assert event_log.events == []


def test_run_writes_log_file(tmp_path):
    log_path = tmp_path / "run.log"

    run_scenario(str(SCENARIOS_DIR / "circular_wait.json"), log_file=str(log_path), echo=False)

    content = log_path.read_text(encoding='utf-8')
    assert "DEADLOCK DETECTED" in content
    assert "SCENARIO COMPLETE: " + STOP_RESOLVED in content


def test_cli_exit_codes(monkeypatch, tmp_path):
    """Test main() maps stop reasons to exit codes."""
    ragged = tmp_path / "ragged.json"
    ragged.write_text(json.dumps(_minimal(
        processes=2, resources={"total": [1, 1], "available": [1, 1]}, allocation=[[0, 0], [0]]
    )), encoding='utf-8')

    cases = [
        (["--scenario", str(SCENARIOS_DIR / "ordered_requests.json")], 0),
        (["--scenario", str(ragged)], 1),
        (["--scenario", str(SCENARIOS_DIR / "unresolved_deadlock.json")], 2),
        (["--scenario", str(SCENARIOS_DIR / "unresolved_deadlock.json"), "--auto-resolve"], 0),
        (["--scenario", str(tmp_path / "nope.json")], 1),
    ]
    for argv, expected in cases:
        monkeypatch.setattr(sys, 'argv', ["simulator.py"] + argv)
        assert simulator.main() == expected


def test_fixture_scenarios_are_valid_json():
    for path in SCENARIOS_DIR.glob("*.json"):
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        assert data.get('description'), f"{path.name} has no description"


def main():
    """Run the scenario tests that need no pytest fixtures."""
    test_load_circular_wait()
    test_available_defaults_to_unallocated_instances()
    test_loader_applies_order_and_wait_for_settings()
    test_run_circular_wait()
    test_run_unresolved_deadlock()
    test_run_ordered_requests()
    test_run_wait_for_cycle()
    test_run_skips_bad_operations()
    test_fixture_scenarios_are_valid_json()
    print("\n✅ Scenario Tests PASSED")
    return 0


if __name__ == '__main__':
    sys.exit(main())
