#!/usr/bin/env python3
"""
Resource Allocation Graph Deadlock Engine
Scenario runner: replays a JSON scenario's operations against the engine.

Demonstrates deadlock detection over allocation and wait-for graphs,
prevention by resource ordering, and recovery by process termination.
"""

import argparse
import sys
from typing import Dict, Optional, Tuple

from algorithms.allocation import AllocationEngine
from analysis.events import EventLog
from models.cycle import CycleRecord, GraphMode
from models.errors import InvalidArgument
from utils.logger import EngineLogger
from utils.scenario_loader import ScenarioLoadError, get_scenario_description, load_scenario


MODES = {
    'allocation': GraphMode.ALLOCATION_GRAPH,
    'wait_for': GraphMode.WAIT_FOR_GRAPH,
}

STOP_COMPLETED = "Completed - no deadlock"
STOP_RESOLVED = "Completed - deadlock resolved"
STOP_DEADLOCK = "Halted - deadlock unresolved"
STOP_LOAD_FAILED = "Scenario load failed"


def run_scenario(
    scenario_path: str,
    mode: str = 'allocation',
    auto_resolve: bool = False,
    verbose: bool = False,
    log_file: Optional[str] = None,
    echo: bool = True
) -> Tuple[EventLog, str]:
    """
    Replay a scenario and report how it ended.

    Step Ordering:
    1. Build the ledger, order and wait-for graph from the scenario
    2. Apply each operation in file order
    3. After 'detect', resolve immediately if auto_resolve is set
    4. Run a final detection in the default mode

    Args:
        scenario_path: Path to scenario JSON file
        mode: Default graph for detection ('allocation' or 'wait_for')
        auto_resolve: Resolve every detected cycle straight away
        verbose: Enable debug logging
        log_file: Optional log file path
        echo: Print log messages to the console

    Returns:
        Tuple of (EventLog with every engine decision, stop reason)
    """
    logger = EngineLogger(verbose=verbose, log_file=log_file, echo=echo)

    try:
        engine, operations = load_scenario(scenario_path, logger)
    except ScenarioLoadError as e:
        logger.log(f"Failed to load scenario: {e}", "error")
        logger.close()
        return EventLog(), STOP_LOAD_FAILED

    logger.log(f"\n{'='*60}")
    logger.log(f"SCENARIO START: {get_scenario_description(scenario_path) or scenario_path}")
    logger.log(f"Processes: {engine.num_processes}, Resources: {engine.num_resources}, "
               f"Detection mode: {mode}")
    logger.log(f"{'='*60}\n")

    default_mode = MODES[mode]
    last_cycle: Optional[CycleRecord] = None
    resolved_any = False

    for op in operations:
        try:
            last_cycle, resolved = _apply_operation(op, engine, default_mode, last_cycle, auto_resolve, logger)
        except InvalidArgument as e:
            # Bad operations are reported and skipped, the ledger is unchanged
            logger.log(f"Operation {op} rejected: {e}", "error")
            continue
        resolved_any = resolved_any or resolved

    final_cycle = engine.detect_deadlock(default_mode)
    if final_cycle is not None and auto_resolve:
        engine.resolve_deadlock(final_cycle)
        resolved_any = True
        final_cycle = engine.detect_deadlock(default_mode)

    if final_cycle is not None:
        stop_reason = STOP_DEADLOCK
    elif resolved_any:
        stop_reason = STOP_RESOLVED
    else:
        stop_reason = STOP_COMPLETED

    logger.log(f"\n{'='*60}")
    logger.log(f"SCENARIO COMPLETE: {stop_reason}")
    logger.log(f"Available: {list(engine.ledger.available)}")
    logger.log(f"Terminated: {[f'P{pid}' for pid in engine.terminated_processes()]}")
    logger.log(f"{'='*60}\n")
    logger.log(engine.event_log.display(), "debug")

    logger.close()
    return engine.event_log, stop_reason


def _apply_operation(
    op: Dict,
    engine: AllocationEngine,
    default_mode: GraphMode,
    last_cycle: Optional[CycleRecord],
    auto_resolve: bool,
    logger: EngineLogger
) -> Tuple[Optional[CycleRecord], bool]:
    """
    Apply one scenario operation.

    Returns:
        Tuple of (most recent unresolved cycle, whether a cycle was resolved)
    """
    kind = op['op']

    if kind == 'request':
        engine.request_resource(op['process'], op['resource'], op['units'])

    elif kind == 'release':
        engine.release_resource(op['process'], op['resource'], op['units'])

    elif kind == 'set_order':
        engine.set_order(op['order'])

    elif kind == 'wait_for_edge':
        engine.input_wait_for_edge(op['from'], op['to'], op.get('prevention'))

    elif kind == 'detect':
        mode = MODES[op['mode']] if 'mode' in op else default_mode
        last_cycle = engine.detect_deadlock(mode)
        if last_cycle is None:
            logger.log(f"No deadlock detected ({mode.value} graph)")
        elif auto_resolve:
            engine.resolve_deadlock(last_cycle)
            return None, True

    elif kind == 'resolve':
        if last_cycle is None:
            logger.log("No detected cycle to resolve", "warning")
        else:
            engine.resolve_deadlock(last_cycle)
            return None, True

    return last_cycle, False


def main():
    """Main entry point for the scenario runner."""
    parser = argparse.ArgumentParser(
        description='Resource Allocation Graph Deadlock Engine - scenario runner'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        required=True,
        help='Path to scenario JSON file'
    )
    parser.add_argument(
        '--mode',
        choices=sorted(MODES),
        default='allocation',
        help='Graph used for detection when an operation does not name one (default: allocation)'
    )
    parser.add_argument(
        '--auto-resolve',
        action='store_true',
        help='Terminate the processes on every detected cycle'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write the log to this file'
    )

    args = parser.parse_args()

    _, stop_reason = run_scenario(
        args.scenario, args.mode, args.auto_resolve, args.verbose, args.log_file
    )

    if stop_reason == STOP_LOAD_FAILED:
        return 1
    if stop_reason == STOP_DEADLOCK:
        return 2
    return 0


if __name__ == '__main__':
    sys.exit(main())
