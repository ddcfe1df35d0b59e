"""
Scenario Loader for the Resource Allocation Graph Deadlock Engine.

Loads and validates JSON scenario files describing an initial ledger, an
optional resource order and wait-for graph, and a list of operations to
replay.
"""

import json
from typing import Any, Dict, List, Optional, Tuple

from algorithms.allocation import AllocationEngine, initialize
from models.errors import InvalidArgument
from models.wait_for_graph import WaitForGraph
from utils.logger import EngineLogger


OPERATION_FIELDS = {
    'request': ['process', 'resource', 'units'],
    'release': ['process', 'resource', 'units'],
    'detect': [],
    'resolve': [],
    'set_order': ['order'],
    'wait_for_edge': ['from', 'to'],
}


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


def load_scenario(
    file_path: str,
    logger: Optional[EngineLogger] = None
) -> Tuple[AllocationEngine, List[Dict[str, Any]]]:
    """
    Load scenario from JSON file.

    Args:
        file_path: Path to scenario JSON file
        logger: Logger handed to the engine

    Returns:
        Tuple of (AllocationEngine, operations)
        - AllocationEngine: Initialized engine over the scenario's ledger
        - operations: Validated operation dictionaries in file order

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    return build_scenario(data, logger)


def build_scenario(
    data: Dict[str, Any],
    logger: Optional[EngineLogger] = None
) -> Tuple[AllocationEngine, List[Dict[str, Any]]]:
    """
    Build an engine and operation list from already-parsed scenario data.

    Raises:
        ScenarioLoadError: If the data is invalid
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("Scenario must be a JSON object")

    for field in ['processes', 'resources', 'allocation']:
        if field not in data:
            raise ScenarioLoadError(f"Scenario missing '{field}' field")

    num_processes = data['processes']
    resources = data['resources']
    if not isinstance(num_processes, int):
        raise ScenarioLoadError(f"'processes' must be an integer, got {num_processes!r}")
    if not isinstance(resources, dict) or 'total' not in resources:
        raise ScenarioLoadError("'resources' must be an object with a 'total' list")

    totals = resources['total']
    availables = resources.get('available')
    if not isinstance(totals, list):
        raise ScenarioLoadError("'resources.total' must be a list")
    if availables is None:
        # Default: whatever the initial allocation leaves free
        availables = _free_after_allocation(totals, data['allocation'])

    wait_for_data = data.get('wait_for', {})
    if not isinstance(wait_for_data, dict):
        raise ScenarioLoadError("'wait_for' must be an object with 'prevention' and 'edges'")
    wait_for_edges = wait_for_data.get('edges', [])
    if not isinstance(wait_for_edges, list):
        raise ScenarioLoadError("'wait_for.edges' must be a list of [from, to] pairs")
    raw_operations = data.get('operations', [])
    if not isinstance(raw_operations, list):
        raise ScenarioLoadError("'operations' must be a list")

    try:
        engine = initialize(
            num_processes,
            len(totals),
            totals,
            availables,
            data['allocation'],
            data.get('request'),
            ordering_enabled=data.get('ordering_enabled', True),
            victim_policy=data.get('victim_policy', 'all_on_cycle'),
            wait_for_graph=WaitForGraph(num_processes, wait_for_data.get('prevention', False)),
            logger=logger
        )
    except InvalidArgument as e:
        raise ScenarioLoadError(f"Invalid initial state: {e}")

    if 'order' in data:
        # A malformed order is not fatal: the engine falls back to identity
        engine.set_order(data['order'])

    for edge in wait_for_edges:
        if not isinstance(edge, list) or len(edge) != 2:
            raise ScenarioLoadError(f"Wait-for edge must be a [from, to] pair, got {edge!r}")
        try:
            engine.input_wait_for_edge(edge[0], edge[1])
        except InvalidArgument as e:
            raise ScenarioLoadError(f"Invalid wait-for edge {edge}: {e}")

    operations = [_validate_operation(op, index) for index, op in enumerate(raw_operations)]

    return engine, operations


def _free_after_allocation(totals: List[int], allocation: Any) -> List[int]:
    try:
        held = [sum(row[j] for row in allocation) for j in range(len(totals))]
        free = [total - h for total, h in zip(totals, held)]
    except (TypeError, IndexError):
        raise ScenarioLoadError(
            "'resources.total' and 'allocation' must hold counts, one column per resource"
        )
    return free


def _validate_operation(op: Any, index: int) -> Dict[str, Any]:
    """
    Validate one operation entry.

    Raises:
        ScenarioLoadError: If the operation is unknown or missing fields
    """
    if not isinstance(op, dict) or 'op' not in op:
        raise ScenarioLoadError(f"Operation {index}: missing 'op' field")

    kind = op['op']
    if kind not in OPERATION_FIELDS:
        raise ScenarioLoadError(f"Operation {index}: unknown op '{kind}'")

    for field in OPERATION_FIELDS[kind]:
        if field not in op:
            raise ScenarioLoadError(f"Operation {index}: {kind} missing '{field}'")

    if kind == 'detect' and op.get('mode', 'allocation') not in ('allocation', 'wait_for'):
        raise ScenarioLoadError(f"Operation {index}: unknown detect mode '{op['mode']}'")

    return op


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Args:
        file_path: Path to scenario JSON file

    Returns:
        Description string, or empty string if not present
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    return data.get('description', '') if isinstance(data, dict) else ''
