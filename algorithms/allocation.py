"""
Allocation Engine for the Resource Allocation Graph Deadlock Engine.

Orchestrates request/release/kill against the ledger, applies the
resource-ordering rule before granting, and runs graph construction plus
cycle detection on demand.
"""

from typing import List, Optional, Sequence, Tuple

from algorithms.detection import detect_cycle
from algorithms.graph_builder import build_allocation_graph, build_wait_for_graph, describe_edges
from algorithms.ordering import OrderResult, ResourceOrder, find_violation
from algorithms.recovery import VICTIM_POLICIES, format_released, recover_from_deadlock
from algorithms.reduction import find_deadlocked_processes
from analysis.events import EventLog, EventType
from models.cycle import CycleRecord, GraphMode
from models.errors import InsufficientResources, InvalidArgument, InvalidOperation
from models.ledger import ResourceLedger
from models.process import Process, ProcessState
from models.results import ReleaseOutcome, ReleaseResult, RequestOutcome, RequestResult
from models.wait_for_graph import EdgeOutcome, WaitForGraph
from utils.logger import EngineLogger


class AllocationEngine:
    """
    Request/release/kill orchestration over a single ledger.

    Per-process states: IDLE -> REQUESTING -> GRANTED | DENIED for each
    request; a killed process is TERMINATED for good and every later request
    from it is denied.

    Attributes:
        ledger: Resource ledger (single source of truth)
        order: Resource order used by the prevention rule
        ordering_enabled: Apply the resource-ordering rule to requests
        wait_for_graph: Caller-supplied wait-for graph (wait-for mode)
        processes: Per-process state records, indexed by pid
        event_log: Every decision the engine made
        victim_policy: "all_on_cycle" or "fewest_held"
    """

    def __init__(
        self,
        ledger: ResourceLedger,
        order: Optional[ResourceOrder] = None,
        ordering_enabled: bool = True,
        wait_for_graph: Optional[WaitForGraph] = None,
        victim_policy: str = "all_on_cycle",
        logger: Optional[EngineLogger] = None
    ):
        if victim_policy not in VICTIM_POLICIES:
            raise InvalidArgument(
                f"Unknown victim policy '{victim_policy}' "
                f"(expected one of {', '.join(VICTIM_POLICIES)})"
            )

        self.ledger = ledger
        self.order = order or ResourceOrder(ledger.num_resources)
        self.ordering_enabled = ordering_enabled
        self.wait_for_graph = wait_for_graph or WaitForGraph(ledger.num_processes)
        self.victim_policy = victim_policy
        self.logger = logger or EngineLogger(echo=False)
        self.processes = [Process(pid=i) for i in range(ledger.num_processes)]
        self.event_log = EventLog()

        if self.wait_for_graph.num_processes != ledger.num_processes:
            raise InvalidArgument(
                f"Wait-for graph has {self.wait_for_graph.num_processes} processes, "
                f"ledger has {ledger.num_processes}"
            )

    @property
    def num_processes(self) -> int:
        return self.ledger.num_processes

    @property
    def num_resources(self) -> int:
        return self.ledger.num_resources

    def state_of(self, pid: int) -> ProcessState:
        self.ledger.check_process(pid)
        return self.processes[pid].state

    def terminated_processes(self) -> List[int]:
        return [p.pid for p in self.processes if p.is_terminated()]

    def _validate_request_args(self, pid: int, resource_type: int, amount: int) -> None:
        self.ledger.check_process(pid)
        self.ledger.check_resource(resource_type)
        self.ledger.check_units(amount)

    def set_order(self, order: Sequence[int]) -> OrderResult:
        """
        Install a resource order; a malformed one falls back to identity.

        Returns:
            OrderResult with accepted flag, effective order and warning
        """
        result = self.order.set_order(order)
        self.logger.log_order(result.effective_order, result.accepted, result.warning)
        if not result.accepted:
            self.event_log.record(EventType.ORDER_RESET, reason=result.warning)
        return result

    def request_resource(self, pid: int, resource_type: int, amount: int) -> RequestResult:
        """
        Handle a resource request.

        Steps:
        1. Validate indices and amount (raises InvalidArgument)
        2. Deny terminated processes
        3. Check the resource-ordering rule (if enabled)
        4. Grant if available >= amount, otherwise record the pending request

        Args:
            pid: Requesting process
            resource_type: Resource type index
            amount: Number of instances requested

        Returns:
            RequestResult (GRANTED, DENIED or ORDER_VIOLATION)
        """
        self._validate_request_args(pid, resource_type, amount)
        process = self.processes[pid]

        if process.is_terminated():
            return self._deny(pid, resource_type, amount, "Process terminated", RequestOutcome.DENIED)

        process.begin_request()

        if self.ordering_enabled:
            violation = find_violation(pid, resource_type, self.ledger, self.order)
            if violation is not None:
                process.finish_request(granted=False)
                return self._deny(pid, resource_type, amount, str(violation),
                                  RequestOutcome.ORDER_VIOLATION, violation=violation)

        available = int(self.ledger.available[resource_type])
        if amount > available:
            self.ledger.record_request(pid, resource_type, amount)
            process.finish_request(granted=False)
            shortfall = InsufficientResources(resource_type, amount, available)
            return self._deny(pid, resource_type, amount, f"{shortfall} - request pending",
                              RequestOutcome.DENIED, shortfall=shortfall)

        self.ledger.grant(pid, resource_type, amount)
        process.finish_request(granted=True)

        # SANITY CHECK: Verify resource conservation after grant
        self.ledger.assert_conservation(f"after granting R{resource_type}[{amount}] to P{pid}")

        reason = "Resources available"
        self.logger.log_request(pid, resource_type, amount, "GRANTED", reason)
        self.event_log.record(EventType.ALLOCATION, pid, resource_type=resource_type,
                              amount=amount, reason=reason)
        return RequestResult(RequestOutcome.GRANTED, pid, resource_type, amount, reason)

    def _deny(self, pid, resource_type, amount, reason, outcome, violation=None, shortfall=None):
        self.logger.log_request(pid, resource_type, amount, outcome.value, reason)
        event_type = (EventType.ORDER_VIOLATION if outcome == RequestOutcome.ORDER_VIOLATION
                      else EventType.DENIAL)
        self.event_log.record(event_type, pid, resource_type=resource_type,
                              amount=amount, reason=reason)
        return RequestResult(outcome, pid, resource_type, amount, reason,
                             violation=violation, shortfall=shortfall)

    def release_resource(self, pid: int, resource_type: int, amount: int) -> ReleaseResult:
        """
        Release resources held by a process.

        Does not re-run detection; the caller decides when to.

        Returns:
            ReleaseResult (RELEASED, or INVALID_OPERATION with no mutation)
        """
        self._validate_request_args(pid, resource_type, amount)

        try:
            self.ledger.release(pid, resource_type, amount)
        except InvalidOperation as e:
            self.logger.log_release(pid, resource_type, amount, False, str(e))
            return ReleaseResult(ReleaseOutcome.INVALID_OPERATION, pid, resource_type, amount, str(e))

        self.ledger.assert_conservation(f"after P{pid} released R{resource_type}[{amount}]")

        self.logger.log_release(pid, resource_type, amount, True)
        self.event_log.record(EventType.RELEASE, pid, resource_type=resource_type, amount=amount)
        return ReleaseResult(ReleaseOutcome.RELEASED, pid, resource_type, amount)

    def input_wait_for_edge(self, waiter: int, holder: int,
                            prevention_enabled: Optional[bool] = None) -> EdgeOutcome:
        """
        Add edge waiter -> holder to the wait-for graph, subject to the order rule.

        Edges touching a terminated process are rejected without mutation.
        """
        self.ledger.check_process(waiter)
        self.ledger.check_process(holder)

        dead = [pid for pid in (waiter, holder) if self.processes[pid].is_terminated()]
        if dead:
            outcome = EdgeOutcome.REJECTED_TERMINATED
        else:
            outcome = self.wait_for_graph.add_edge(waiter, holder, prevention_enabled)

        if outcome == EdgeOutcome.ADDED:
            self.logger.log(f"Wait-for edge P{waiter} -> P{holder} added", "debug")
            self.event_log.record(EventType.EDGE_ADDED, waiter, message=f"P{waiter} -> P{holder}")
        else:
            if outcome == EdgeOutcome.REJECTED_TERMINATED:
                reason = f"P{dead[0]} is terminated"
            else:
                reason = f"P{waiter} may only wait on a higher-numbered process"
            self.logger.log(f"Wait-for edge P{waiter} -> P{holder} rejected ({reason})", "warning")
            self.event_log.record(EventType.EDGE_REJECTED, waiter,
                                  message=f"P{waiter} -> P{holder}", reason=reason)
        return outcome

    def derive_wait_for_graph(self) -> WaitForGraph:
        """
        Fresh wait-for graph reduced from the ledger's allocation graph.

        The engine's caller-supplied wait-for graph is left untouched.
        """
        adjacency = build_wait_for_graph(self.ledger)
        return WaitForGraph.from_matrix(adjacency.astype(int))

    def detect_deadlock(self, mode: GraphMode = GraphMode.ALLOCATION_GRAPH) -> Optional[CycleRecord]:
        """
        Run cycle detection over the current state without mutating it.

        Args:
            mode: ALLOCATION_GRAPH (derived from the ledger) or
                  WAIT_FOR_GRAPH (caller-supplied)

        Returns:
            CycleRecord for the first cycle found, or None
        """
        if mode == GraphMode.ALLOCATION_GRAPH:
            adjacency = build_allocation_graph(self.ledger)
            node_count = self.num_processes + self.num_resources
        elif mode == GraphMode.WAIT_FOR_GRAPH:
            adjacency = self.wait_for_graph.adjacency
            node_count = self.num_processes
        else:
            raise InvalidArgument(f"Unknown graph mode: {mode}")

        self.logger.log(f"{mode.value} graph edges: {describe_edges(adjacency, self.num_processes)}", "debug")

        cycle = detect_cycle(adjacency, node_count, mode, self.num_processes)

        if cycle is None:
            self.logger.log(f"No deadlock detected ({mode.value} graph)", "debug")
            return None

        self.logger.log_deadlock(str(cycle))
        self.event_log.record(EventType.DEADLOCK, message=str(cycle))
        return cycle

    def deadlocked_processes(self) -> List[int]:
        """
        Processes whose pending requests can never be met (Work/Finish reduction).

        Terminated processes are treated as finished.
        """
        return find_deadlocked_processes(self.ledger, self.terminated_processes())

    def resolve_deadlock(self, cycle: CycleRecord) -> List[Tuple[int, List[int]]]:
        """
        Kill the victims on a reported cycle.

        Args:
            cycle: Record returned by detect_deadlock

        Returns:
            List of (pid, released amounts by resource type)

        Raises:
            InvalidArgument: If the record is stale for this engine
        """
        wait_for_graph = self.wait_for_graph if cycle.mode == GraphMode.WAIT_FOR_GRAPH else None

        results = recover_from_deadlock(
            cycle,
            self.ledger,
            self.processes,
            wait_for_graph=wait_for_graph,
            policy=self.victim_policy
        )

        for pid, released in results:
            released_str = format_released(released)
            self.logger.log_recovery(pid, released_str)
            self.event_log.record(EventType.RECOVERY, pid,
                                  message=f"Terminated P{pid} (released {released_str})")
        return results


def initialize(
    process_count: int,
    resource_count: int,
    totals: Sequence[int],
    availables: Sequence[int],
    allocation: Optional[Sequence[Sequence[int]]] = None,
    requests: Optional[Sequence[Sequence[int]]] = None,
    **engine_options
) -> AllocationEngine:
    """
    Create an engine over a freshly validated ledger.

    Args:
        process_count: P
        resource_count: R
        totals: [R] total instances
        availables: [R] available instances
        allocation: [P][R] initial allocation (zeros if omitted)
        requests: [P][R] initial pending requests (zeros if omitted)
        **engine_options: Passed to AllocationEngine

    Raises:
        InvalidArgument: If shapes mismatch, counts are negative, or the
                         state violates resource conservation
    """
    ledger = ResourceLedger(process_count, resource_count, totals, availables, allocation, requests)
    return AllocationEngine(ledger, **engine_options)
