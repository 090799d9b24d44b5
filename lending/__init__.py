"""
lending/ - Lending pool simulation.

Modules:
- abi: call data encoding / return data decoding
- rates: ray rate to APY
- state_reader: concurrent state reads and normalization
- memory: in-memory state source for replay and tests
- simulator: supply / withdraw / borrow / repay projections
- tx_builder: pool call payloads and gas estimation
"""

from lending.rates import calculate_apy
from lending.state_reader import (
    ProtocolStateReader,
    RPCStateSource,
    StateReader,
    StateSource,
)
from lending.memory import InMemoryStateSource, demo_state
from lending.simulator import (
    SimulationEngine,
    project_borrow,
    project_repay,
    project_supply,
    project_withdraw,
)
from lending.tx_builder import TxPayloadBuilder, estimate_gas

__all__ = [
    "calculate_apy",
    # State
    "ProtocolStateReader",
    "RPCStateSource",
    "StateReader",
    "StateSource",
    "InMemoryStateSource",
    "demo_state",
    # Simulation
    "SimulationEngine",
    "project_borrow",
    "project_repay",
    "project_supply",
    "project_withdraw",
    # Transactions
    "TxPayloadBuilder",
    "estimate_gas",
]
