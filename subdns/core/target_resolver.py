"""Target resolver — derive the address/port a subdomain should point at."""

from subdns.core import state_manager
from subdns.core.errors import AllocationNotFound
from subdns.core.models import Allocation, Node, Target


def resolve_target(allocation: Allocation | None, node: Node | None = None) -> Target:
    """Pick the address for *allocation*.  First match wins:

    1. the allocation's alias, used verbatim (assumed to already exist at
       the provider when it is a hostname);
    2. the owning node's public IPv4;
    3. the allocation's bound ip.

    The port is returned as-is; ``0`` is a valid result and SRV callers must
    reject it themselves.
    """
    if allocation is None:
        raise AllocationNotFound("Workload primary allocation not found")

    if allocation.ip_alias:
        address = allocation.ip_alias
    elif allocation.node_id and node is not None and node.public_ipv4:
        address = node.public_ipv4
    else:
        address = allocation.ip

    return Target(address=address, port=int(allocation.port or 0))


def target_for_allocation(allocation_id: str) -> Target:
    """Look up *allocation_id* (and its node) in the inventory and resolve it."""
    allocation = state_manager.get_allocation(allocation_id)
    if allocation is None:
        raise AllocationNotFound(f"Allocation '{allocation_id}' not found")
    node = state_manager.get_node(allocation.node_id) if allocation.node_id else None
    return resolve_target(allocation, node)
